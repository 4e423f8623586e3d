import logging
from typing import Any

from pydantic import ValidationError

from app.agents.chart.schemas import (
    ChartPayload,
    InlineChart,
    MixedChart,
    PlainObject,
    RenderDecision,
)

logger = logging.getLogger(__name__)


def is_chart_candidate(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and value.get("labels") is not None
        and value.get("values") is not None
    )


def _is_valid_series(series: Any) -> bool:
    if not isinstance(series, dict):
        return False
    if series.get("type") is None:
        return False
    if not isinstance(series.get("data"), (list, tuple)):
        return False
    return series.get("name") is not None or series.get("label") is not None


def validate_mixed_series(values: list[Any]) -> bool:
    """Every series of a mixed chart needs ``type``, ``data`` and ``name`` or ``label``."""
    return bool(values) and all(_is_valid_series(series) for series in values)


def classify(value: Any) -> RenderDecision:
    """Decide how a structured agent reply should be rendered. Never raises."""
    if not is_chart_candidate(value):
        return PlainObject(value)

    try:
        payload = ChartPayload.model_validate(value)
    except ValidationError as exc:
        logger.info("Chart-like reply rejected, showing raw data: %s", exc.errors()[:1])
        return PlainObject(value)

    if payload.is_mixed:
        if validate_mixed_series(payload.values):
            return MixedChart(payload)
        logger.info("Mixed chart with invalid series downgraded to raw data (%s).", payload.title or "untitled")
        return PlainObject(value)

    return InlineChart(payload)
