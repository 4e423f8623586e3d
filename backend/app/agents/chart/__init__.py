from typing import Any

from app.agents.chart.classifier import classify
from app.agents.chart.normalizer import normalize
from app.agents.chart.reference import extract_reference
from app.agents.chart.schemas import (
    ChartPayload,
    ChartReference,
    InlineChart,
    MixedChart,
    PlainObject,
    PlainText,
    ReplyDecision,
    StructuredValue,
    TextReply,
)


def interpret(raw: Any) -> ReplyDecision:
    """Turn a raw agent reply into a tagged render decision."""
    content = normalize(raw)
    if isinstance(content, PlainText):
        reference = extract_reference(content.text)
        if reference is not None:
            return reference
        return TextReply(content.text)
    return classify(content.value)


__all__ = [
    "ChartPayload",
    "ChartReference",
    "InlineChart",
    "MixedChart",
    "PlainObject",
    "PlainText",
    "StructuredValue",
    "TextReply",
    "classify",
    "extract_reference",
    "interpret",
    "normalize",
]
