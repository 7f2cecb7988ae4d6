#!/usr/bin/env python3
"""
Test Suite for the FastAPI endpoints

TEST COVERAGE:
    - Pipeline endpoints map outcome states to HTTP status codes
    - Knowledge base CRUD endpoints
    - Health check

USAGE:
    Run from project root: python -m pytest tests/test_api.py -v
"""

import os
import sys
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from backend.app import main
from backend.app.controller import Controller
from backend.app.errors import TransportError
from backend.app.generate import InferenceSettings
from backend.data.database import create_tables, make_engine
from backend.data.store import FactStore, KnowledgeStore
from backend.schemas.io_models import FactRow, KnowledgeEntry


class FakeClient:
    def __init__(self, reply="", error=None):
        self.settings = InferenceSettings(base_url="https://inference.test/chat",
                                          image_url="https://inference.test/image", model="test-model")
        self.reply = reply
        self.error = error
        self.requests = []

    def invoke(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.reply

    def invoke_image(self, request):
        return self.invoke(request)


class TestApi(unittest.TestCase):

    def setUp(self):
        engine = make_engine("sqlite://")
        create_tables(bind=engine)
        factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

        self.saved = (main.knowledge_store, main.fact_store, main.controller)
        main.knowledge_store = KnowledgeStore(factory)
        main.fact_store = FactStore(factory)
        self.client = TestClient(main.app)

    def tearDown(self):
        main.knowledge_store, main.fact_store, main.controller = self.saved

    def use_reply(self, reply="", error=None, **kwargs):
        fake = FakeClient(reply=reply, error=error)
        main.controller = Controller(client=fake, **kwargs)
        return fake

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "healthy"})

    def test_chat_uses_stored_knowledge(self):
        main.knowledge_store.save_knowledge_base([KnowledgeEntry(id="k1", question="价格", answer="活动价 2599 元")])
        fake = self.use_reply("您好，活动价 2599 元")

        response = self.client.post("/chat", json={"question": "这个价格多少", "product": {"name": "UltraView 27"}})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["state"], "VALIDATED")
        self.assertEqual(body["result"], {"text": "您好，活动价 2599 元"})
        self.assertIn("活动价 2599 元", fake.requests[0].messages[-1].content)

    def test_chat_link_failure_is_502(self):
        self.use_reply(error=TransportError("could not reach inference endpoint: refused"))
        response = self.client.post("/chat", json={"question": "hello"})
        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()["state"], "FAILED_TRANSPORT")
        self.assertTrue(response.json()["message"].startswith("AI link interrupted"))

    def test_forecast_with_insufficient_history_is_422(self):
        self.use_reply("{}", min_history_points=3)
        response = self.client.post("/forecast", json={"identifier": "A", "horizon": 7})
        self.assertEqual(response.status_code, 422)
        body = response.json()
        self.assertEqual(body["state"], "FAILED_HISTORY")
        self.assertEqual(body["error"]["points"], 0)

    def test_copy_result_uses_wire_field_names(self):
        self.use_reply('{"headline":"h","copy":"c","visualHooks":"v","keywords":["k"]}')
        response = self.client.post("/copy", json={"platform": "xiaohongshu", "strategy": "launch"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["result"],
                         {"headline": "h", "copy": "c", "visualHooks": "v", "keywords": ["k"]})

    def test_copy_unknown_platform_rejected(self):
        self.use_reply("{}")
        response = self.client.post("/copy", json={"platform": "weibo", "strategy": "launch"})
        self.assertEqual(response.status_code, 422)

    def test_forecast_reads_fact_store(self):
        main.fact_store.bulk_add([
            FactRow(identifier="A", date="2000-01-01", quantity=1),
        ])
        self.use_reply('{"summary":"s","analysis":"a","forecast":[{"date":"2000-01-02","predicted_sales":"3"}]}',
                       min_history_points=1, history_days=100000)
        response = self.client.post("/forecast", json={"identifier": "A"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["result"]["total_predicted_sales"], 3)

    def test_knowledge_crud(self):
        created = self.client.post("/knowledge", json={"category": "pricing", "question": "价格", "answer": "2599"})
        self.assertEqual(created.status_code, 201)
        entry_id = created.json()["id"]

        updated = self.client.put(f"/knowledge/{entry_id}", json={"question": "价格", "answer": "2399"})
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(self.client.get("/knowledge").json()[0]["answer"], "2399")

        self.assertEqual(self.client.delete(f"/knowledge/{entry_id}").status_code, 204)
        self.assertEqual(self.client.get("/knowledge").json(), [])
        self.assertEqual(self.client.delete(f"/knowledge/{entry_id}").status_code, 404)

    def test_empty_question_is_rejected_before_the_pipeline(self):
        fake = self.use_reply("unused")
        response = self.client.post("/chat", json={"question": ""})
        self.assertEqual(response.status_code, 422)
        self.assertIn("detail", response.json())
        self.assertEqual(fake.requests, [])

    def test_empty_forecast_identifier_is_rejected(self):
        fake = self.use_reply("{}")
        response = self.client.post("/forecast", json={"identifier": ""})
        self.assertEqual(response.status_code, 422)
        self.assertIn("detail", response.json())
        self.assertNotIn("state", response.json())
        self.assertEqual(fake.requests, [])

    def test_colliding_new_entry_id_is_409(self):
        main.knowledge_store.save_knowledge_base([KnowledgeEntry(id="k1", question="q", answer="a")])
        with patch("backend.app.main.new_entry_id", return_value="k1"):
            response = self.client.post("/knowledge", json={"question": "q2", "answer": "a2"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual([e.answer for e in main.knowledge_store.load_knowledge_base()], ["a"])

    def test_replace_knowledge_rejects_duplicate_ids(self):
        entries = [{"id": "k1", "question": "a", "answer": "b"}, {"id": "k1", "question": "c", "answer": "d"}]
        self.assertEqual(self.client.put("/knowledge", json=entries).status_code, 409)


if __name__ == "__main__":
    unittest.main()
