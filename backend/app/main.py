#!/usr/bin/env python3
"""
Main FastAPI application for the e-commerce AI operations backend.
"""

from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..data.database import create_tables
from ..data.store import FactStore, KnowledgeStore
from ..schemas.io_models import (
    ChatRequest,
    CopyRequest,
    ForecastRequest,
    ImageGenerationRequest,
    KnowledgeEntry,
    KnowledgeEntryInput,
    PipelineOutcome,
    PipelineState,
)
from ..utils.logger import get_logger
from .config import Config
from .controller import Controller, fetch_and_forecast
from .errors import KnowledgeBaseError
from .knowledge import add_entry, delete_entry, edit_entry, new_entry_id

logger = get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="E-commerce AI Operations API",
    description="Grounded generation pipeline for customer service, copy, forecasting and product images",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify your frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize components
create_tables()
knowledge_store = KnowledgeStore()
fact_store = FactStore()
controller = Controller()

STATUS_BY_STATE = {
    PipelineState.VALIDATED: 200,
    PipelineState.FAILED_HISTORY: 422,
    PipelineState.FAILED_TRANSPORT: 502,
    PipelineState.FAILED_ENDPOINT: 502,
    PipelineState.FAILED_SCHEMA: 502,
}


def _respond(outcome: PipelineOutcome) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_STATE.get(outcome.state, 500),
        content=outcome.model_dump(mode="json", by_alias=True),
    )


@app.post("/chat")
def chat(request: ChatRequest):
    """Draft a customer-service reply grounded in the knowledge base and the product."""
    outcome = controller.run_chat(
        request.question,
        product=request.product,
        knowledge_base=knowledge_store.load_knowledge_base(),
    )
    return _respond(outcome)


@app.post("/copy")
def copy(request: CopyRequest):
    """Generate marketing copy for one platform and campaign strategy."""
    outcome = controller.run_copy(
        request.platform,
        request.strategy,
        product=request.product,
        selling_points=request.selling_points,
    )
    return _respond(outcome)


@app.post("/forecast")
def forecast(request: ForecastRequest):
    """Forecast daily sales from the stored transaction history."""
    outcome = fetch_and_forecast(
        controller,
        fact_store.query_fact_rows,
        request.identifier,
        horizon=request.horizon or Config.DEFAULT_FORECAST_HORIZON,
        factors=request.factors,
        product=request.product,
    )
    return _respond(outcome)


@app.post("/image")
def image(request: ImageGenerationRequest):
    """Synthesize a product photo."""
    outcome = controller.run_image(
        product=request.product,
        scene_style=request.scene_style,
        lighting=request.lighting,
        aspect_ratio=request.aspect_ratio,
        details=request.details,
    )
    return _respond(outcome)


@app.get("/knowledge", response_model=List[KnowledgeEntry])
def list_knowledge():
    return knowledge_store.load_knowledge_base()


@app.put("/knowledge", response_model=List[KnowledgeEntry])
def replace_knowledge(entries: List[KnowledgeEntry]):
    """Replace the whole knowledge base."""
    try:
        knowledge_store.save_knowledge_base(entries)
    except KnowledgeBaseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return entries


@app.post("/knowledge", response_model=KnowledgeEntry, status_code=201)
def create_knowledge(entry: KnowledgeEntryInput):
    created = KnowledgeEntry(id=new_entry_id(), **entry.model_dump())
    try:
        knowledge_store.modify_knowledge_base(lambda entries: add_entry(entries, created))
    except KnowledgeBaseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return created


@app.put("/knowledge/{entry_id}", response_model=KnowledgeEntry)
def update_knowledge(entry_id: str, entry: KnowledgeEntryInput):
    updated = KnowledgeEntry(id=entry_id, **entry.model_dump())
    try:
        knowledge_store.modify_knowledge_base(lambda entries: edit_entry(entries, updated))
    except KnowledgeBaseError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return updated


@app.delete("/knowledge/{entry_id}", status_code=204)
def remove_knowledge(entry_id: str):
    try:
        knowledge_store.modify_knowledge_base(lambda entries: delete_entry(entries, entry_id))
    except KnowledgeBaseError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
