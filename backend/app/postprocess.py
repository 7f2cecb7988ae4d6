#!/usr/bin/env python3
"""
Postprocessing module for the e-commerce AI assistant.

This module checks raw model output against the output contract of the intent
that produced it. Structured answers are parsed and type-checked field by field;
free-text answers are trimmed and never left empty.
"""

import json
import math
import re
from typing import Any, Dict, List

from ..schemas.io_models import (
    ChatIntent,
    ChatReply,
    CopyIntent,
    CopyResult,
    ForecastIntent,
    ForecastPoint,
    ForecastResult,
    ImageIntent,
    ImageResult,
    Intent,
    ValidatedResult,
)
from ..utils.logger import get_logger
from .errors import SchemaViolation

logger = get_logger()

FALLBACK_REPLY = (
    "Sorry, I could not prepare a reply for this question. "
    "Please check the product details and try again."
)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)
_NUMERIC = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$", re.ASCII)


def _strip_fence(raw: str) -> str:
    """Remove one surrounding Markdown code fence, if the model added one."""
    text = raw.strip()
    match = _FENCE.match(text)
    return match.group(1).strip() if match else text


def _require_string(data: Dict[str, Any], field: str) -> str:
    if field not in data:
        raise SchemaViolation(field, "required field is missing")
    value = data[field]
    if not isinstance(value, str):
        raise SchemaViolation(field, f"expected a string, got {type(value).__name__}")
    return value


def _require_list(data: Dict[str, Any], field: str) -> List[Any]:
    if field not in data:
        raise SchemaViolation(field, "required field is missing")
    value = data[field]
    if not isinstance(value, list):
        raise SchemaViolation(field, f"expected a sequence, got {type(value).__name__}")
    return value


def _number(value: Any, field: str) -> float:
    """Accept real numbers and unambiguous numeric strings such as ``"12"``."""
    if isinstance(value, bool):
        raise SchemaViolation(field, "expected a number, got bool")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str) and _NUMERIC.match(value.strip()):
        text = value.strip()
        try:
            number = int(text) if text.lstrip("+-").isdigit() else float(text)
        except ValueError as e:
            # int() refuses strings past the interpreter's digit limit
            raise SchemaViolation(field, "number out of range") from e
    else:
        raise SchemaViolation(field, f"expected a number, got {value!r}")
    try:
        finite = math.isfinite(number)
    except OverflowError:
        finite = False
    if not finite:
        raise SchemaViolation(field, "number out of range")
    return number


class Postprocessor:
    """Validates model output for every intent."""

    def validate(self, intent: Intent, raw: str) -> ValidatedResult:
        """
        Validate ``raw`` against the output contract of ``intent``.

        Args:
            intent: The intent the request was composed for
            raw: Raw model output as returned by the generation client

        Returns:
            ChatReply, CopyResult, ForecastResult or ImageResult

        Raises:
            SchemaViolation: the output is unparseable or misses a required field
        """
        if isinstance(intent, ChatIntent):
            return self.format_reply(raw)
        if isinstance(intent, ImageIntent):
            if not raw or not raw.strip():
                raise SchemaViolation("url", "image endpoint returned an empty url")
            return ImageResult(url=raw.strip())

        data = self.parse_object(raw)
        if isinstance(intent, ForecastIntent):
            return self.validate_forecast(data)
        if isinstance(intent, CopyIntent):
            return self.validate_copy(data)
        raise TypeError(f"Unsupported intent: {type(intent).__name__}")

    def format_reply(self, raw: str) -> ChatReply:
        text = (raw or "").strip()
        if not text:
            logger.info("[VALIDATE] empty chat reply replaced with fallback text")
            return ChatReply(text=FALLBACK_REPLY)
        return ChatReply(text=text)

    def parse_object(self, raw: str) -> Dict[str, Any]:
        try:
            data = json.loads(_strip_fence(raw or ""))
        except ValueError as e:
            logger.info("[VALIDATE] model output failed to parse: %s", e)
            raise SchemaViolation("$", f"response could not be parsed as JSON: {e}") from e
        if not isinstance(data, dict):
            raise SchemaViolation("$", f"expected a JSON object, got {type(data).__name__}")
        return data

    def validate_forecast(self, data: Dict[str, Any]) -> ForecastResult:
        summary = _require_string(data, "summary")
        analysis = _require_string(data, "analysis")
        items = _require_list(data, "forecast")

        points = []
        for i, item in enumerate(items):
            prefix = f"forecast[{i}]"
            if not isinstance(item, dict):
                raise SchemaViolation(prefix, f"expected an object, got {type(item).__name__}")
            day = item.get("date")
            if day is None:
                raise SchemaViolation(f"{prefix}.date", "required field is missing")
            if not isinstance(day, str):
                raise SchemaViolation(f"{prefix}.date", f"expected a string, got {type(day).__name__}")
            if "predicted_sales" not in item:
                raise SchemaViolation(f"{prefix}.predicted_sales", "required field is missing")
            sales = _number(item["predicted_sales"], f"{prefix}.predicted_sales")
            points.append(ForecastPoint(date=day, predicted_sales=sales))

        if not points:
            logger.info("[VALIDATE] model declined to forecast (empty forecast list)")
        return ForecastResult(summary=summary, analysis=analysis, forecast=points)

    def validate_copy(self, data: Dict[str, Any]) -> CopyResult:
        headline = _require_string(data, "headline")
        copy_text = _require_string(data, "copy")
        visual_hooks = _require_string(data, "visualHooks")
        keywords = _require_list(data, "keywords")
        for i, keyword in enumerate(keywords):
            if not isinstance(keyword, str):
                raise SchemaViolation(f"keywords[{i}]", f"expected a string, got {type(keyword).__name__}")
        return CopyResult(headline=headline, copy=copy_text, visualHooks=visual_hooks, keywords=keywords)
