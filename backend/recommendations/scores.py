"""Numeric helpers shared by the recency normalizer and the ranker."""

import math
from decimal import Decimal, InvalidOperation

COMPONENT_SCORE_PLACES = 4
RELEVANCE_SCORE_PLACES = 5


def parse_score_or_default(value, default: float = 0.0) -> float:
    """
    Coerce a stored metric value to float.

    Metric columns may come back as floats, Decimals or strings depending on
    the driver and on how the upstream job wrote them. A single unparsable
    row must not abort a batch, so anything that is not a finite number
    yields ``default``.
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default

    try:
        parsed = float(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError):
        return default

    if math.isnan(parsed) or math.isinf(parsed):
        return default
    return parsed


def round_score(value: float, places: int = COMPONENT_SCORE_PLACES) -> float:
    """Fixed-precision rounding applied before a score is persisted."""
    return round(float(value), places)
