#!/usr/bin/env python3
"""
Sales history aggregation for forecasting.

This module turns raw transaction fact rows into a daily series for one product
identifier and checks that enough history exists to ask the model for a forecast.
"""

import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..schemas.io_models import DailyPoint, FactRow
from ..utils.logger import get_logger
from .errors import InsufficientHistory

logger = get_logger()

# Raw export columns that can carry the product identifier, in priority order
IDENTIFIER_KEYS = ("sku_code", "sku", "tracked_sku_id", "product_id", "identifier")
QUANTITY_KEYS = ("paid_items", "quantity")


def coerce_quantity(value: Any) -> Optional[float]:
    """Return a finite number for ``value`` or None when it is unusable."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        # OverflowError: integers beyond float range
        return None
    if not math.isfinite(number):
        return None
    return number


class SeriesAggregator:
    """Filters fact rows and folds them into one point per day."""

    def aggregate(
        self,
        rows: Iterable[FactRow],
        identifier: str,
        start: str,
        end: str,
        min_points: int,
    ) -> List[DailyPoint]:
        """
        Build the daily series for ``identifier`` between ``start`` and ``end`` inclusive.

        Args:
            rows: Fact rows already fetched for the range (any identifiers, any order)
            identifier: Product identifier to keep
            start: First day, ``YYYY-MM-DD``
            end: Last day, ``YYYY-MM-DD``
            min_points: Minimum number of distinct days required

        Returns:
            Daily points sorted ascending by date

        Raises:
            InsufficientHistory: fewer than ``min_points`` distinct days remain
        """
        totals: Dict[str, float] = defaultdict(float)
        skipped = 0

        for row in rows:
            # zero-padded ISO dates compare chronologically as strings
            if row.identifier != identifier or not (start <= row.date <= end):
                continue
            quantity = coerce_quantity(row.quantity)
            if quantity is None:
                skipped += 1
                quantity = 0.0
            totals[row.date] += quantity

        if skipped:
            logger.debug("[SERIES] %d malformed quantity value(s) for %s counted as 0", skipped, identifier)

        series = [DailyPoint(date=day, value=totals[day]) for day in sorted(totals)]

        # counted after grouping so same-day rows do not inflate the total
        if len(series) < min_points:
            logger.info("[SERIES] %s has %d daily point(s), need %d", identifier, len(series), min_points)
            raise InsufficientHistory(points=len(series), required=min_points)

        logger.info("[SERIES] %s aggregated into %d daily point(s)", identifier, len(series))
        return series


def history_window(today: date, days: int) -> Tuple[str, str]:
    """Return the inclusive ``(start, end)`` look-back window ending on ``today``."""
    start = today - timedelta(days=days)
    return start.isoformat(), today.isoformat()


def fact_row_from_record(record: Mapping[str, Any]) -> Optional[FactRow]:
    """Map one raw export record onto a FactRow, or None when it has no identifier or date."""
    identifier = None
    for key in IDENTIFIER_KEYS:
        value = record.get(key)
        if value not in (None, ""):
            identifier = str(value).strip()
            break
    row_date = record.get("date")
    if not identifier or not row_date:
        return None

    quantity = None
    for key in QUANTITY_KEYS:
        if key in record:
            quantity = record[key]
            break

    return FactRow(identifier=identifier, date=str(row_date).strip()[:10], quantity=quantity)
