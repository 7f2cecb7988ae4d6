#!/usr/bin/env python3
"""
Configuration management for the e-commerce AI operations backend.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

class Config:
    """Configuration class for the application."""

    # Inference endpoint (OpenAI-compatible chat completions envelope)
    INFERENCE_API_KEY = os.getenv("INFERENCE_API_KEY")
    INFERENCE_BASE_URL = os.getenv("INFERENCE_BASE_URL", "http://localhost:3000/api/generate")
    INFERENCE_MODEL = os.getenv("INFERENCE_MODEL", "gemini-3-flash-preview")
    IMAGE_ENDPOINT_URL = os.getenv("IMAGE_ENDPOINT_URL", "http://localhost:3000/api/generate-image")
    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", 60))

    # Forecasting
    FORECAST_HISTORY_DAYS = int(os.getenv("FORECAST_HISTORY_DAYS", 90))
    MIN_HISTORY_POINTS = int(os.getenv("MIN_HISTORY_POINTS", 3))
    DEFAULT_FORECAST_HORIZON = int(os.getenv("DEFAULT_FORECAST_HORIZON", 7))

    # Persistence
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(os.path.dirname(__file__), "..", "data", "ecom_ai.db"),
    )

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def debug_print(cls):
        print(f"[CONFIG] INFERENCE_BASE_URL={cls.INFERENCE_BASE_URL}")
        print(f"[CONFIG] INFERENCE_MODEL={cls.INFERENCE_MODEL} key_set={bool(cls.INFERENCE_API_KEY)}")
        print(f"[CONFIG] IMAGE_ENDPOINT_URL={cls.IMAGE_ENDPOINT_URL}")
        print(f"[CONFIG] HISTORY_DAYS={cls.FORECAST_HISTORY_DAYS} MIN_POINTS={cls.MIN_HISTORY_POINTS}")

    @classmethod
    def validate(cls):
        """Validate that the configuration is usable."""
        problems = []

        # A missing API key is allowed so tests and local dev can run offline
        if not cls.INFERENCE_BASE_URL:
            problems.append("INFERENCE_BASE_URL must not be empty")
        if not cls.INFERENCE_MODEL:
            problems.append("INFERENCE_MODEL must not be empty")
        if cls.REQUEST_TIMEOUT <= 0:
            problems.append("REQUEST_TIMEOUT must be positive")
        if cls.FORECAST_HISTORY_DAYS < 1:
            problems.append("FORECAST_HISTORY_DAYS must be at least 1")
        if cls.MIN_HISTORY_POINTS < 1:
            problems.append("MIN_HISTORY_POINTS must be at least 1")
        if cls.DEFAULT_FORECAST_HORIZON < 1:
            problems.append("DEFAULT_FORECAST_HORIZON must be at least 1")

        if problems:
            raise ValueError(f"Invalid configuration: {'; '.join(problems)}")

        return True

# Validate configuration on import
Config.validate()
