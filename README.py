"""
ECOM-AI-OPS - System Documentation
=================================

This module-style README documents the architecture, request pipeline and
operational practices of the e-commerce AI operations backend. It can be
imported to surface sections programmatically or printed for reading.

How to use this file
--------------------
- View in an editor for structured reading.
- Run `python README.py` to print the outline.
- Import `README` in tools or scripts to surface sections.

Table of Contents
-----------------
1. System Overview
2. Request Pipeline
3. Backend Components
4. Data & Persistence
5. Configuration & Environment
6. Testing Strategy
7. Troubleshooting

"""

from __future__ import annotations

import textwrap


def section(title: str, body: str) -> str:
    return f"\n{title}\n{'-' * len(title)}\n{body.strip()}\n"


SYSTEM_OVERVIEW = section(
    "1. System Overview",
    """
    A grounded generation backend for an online store. It drafts customer-service
    replies from a curated Q&A knowledge base, writes platform-specific marketing
    copy, forecasts daily sales from the transaction history and synthesizes
    product photos. Every request is grounded in product attributes and sent to
    one hosted inference endpoint.
    """,
)


PIPELINE = section(
    "2. Request Pipeline",
    """
    - KnowledgeMatcher picks the first Q&A entry whose question and the user's
      question contain one another (chat only).
    - SeriesAggregator folds the last 90 days of fact rows into one point per day
      and refuses to forecast with fewer than 3 distinct days (forecast only).
    - PromptBuilder turns intent + grounding context into a wire request.
    - GenerationClient makes exactly one HTTP call, no retries.
    - Postprocessor checks the answer against the intent's output contract.
    - Controller walks COMPOSED -> DISPATCHED -> RECEIVED -> VALIDATED, or stops
      in FAILED_HISTORY / FAILED_TRANSPORT / FAILED_ENDPOINT / FAILED_SCHEMA.
    """,
)


BACKEND_COMPONENTS = section(
    "3. Backend Components",
    """
    app/
      - main.py: FastAPI app, pipeline and knowledge base routes, CORS.
      - controller.py: State machine and outcome wiring.
      - config.py: Env-driven configuration (keys, URLs, model, windows).
      - errors.py: Pipeline error hierarchy and operator messages.
      - knowledge.py / series.py: Grounding inputs.
      - prompt_builder.py / generate.py / postprocess.py: Compose, call, validate.

    data/
      - database.py / models.py: SQLAlchemy engine, sessions and tables.
      - store.py: Knowledge base and fact row stores.

    scripts/
      - import_data.py: Load sales export CSVs and knowledge base JSON.
    """,
)


DATA_AND_PERSISTENCE = section(
    "4. Data & Persistence",
    """
    - DB: SQLite via SQLAlchemy; tables knowledge_entries and fact_rows.
    - Knowledge base saves replace the whole collection in one transaction.
    - Fact rows are partitioned by source; quantities that are not numbers are
      stored as NULL and counted as zero when aggregated.
    """,
)


CONFIG_ENV = section(
    "5. Configuration & Environment",
    """
    - `.env` compatible; keys: INFERENCE_API_KEY, INFERENCE_BASE_URL,
      INFERENCE_MODEL, IMAGE_ENDPOINT_URL, REQUEST_TIMEOUT, DATABASE_URL, LOG_LEVEL.
    - Forecast tuning: FORECAST_HISTORY_DAYS, MIN_HISTORY_POINTS,
      DEFAULT_FORECAST_HORIZON.
    - Run locally via `uvicorn backend.app.main:app --reload`.
    """,
)


TESTING = section(
    "6. Testing Strategy",
    """
    - unittest suites in `/tests`, run with `python -m pytest tests -v`.
    - The inference endpoint is replaced by a mocked requests session or a fake
      client; stores run against in-memory SQLite.
    """,
)


TROUBLESHOOTING = section(
    "7. Troubleshooting",
    """
    - "Not enough sales history": import more fact rows or lower MIN_HISTORY_POINTS.
    - "AI link interrupted": check INFERENCE_BASE_URL and INFERENCE_API_KEY.
    - "answer was malformed": the model ignored the JSON contract; retry the request.
    """,
)


def as_text() -> str:
    return "\n".join(
        [
            SYSTEM_OVERVIEW,
            PIPELINE,
            BACKEND_COMPONENTS,
            DATA_AND_PERSISTENCE,
            CONFIG_ENV,
            TESTING,
            TROUBLESHOOTING,
        ]
    )


def main() -> None:
    print(textwrap.dedent(as_text()))


if __name__ == "__main__":
    main()
