from dataclasses import dataclass
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, field_validator

MIXED_CHART_TYPE = "mixed"


class ChartPayload(BaseModel):
    """Chart data as produced by the agent.

    Unknown keys are kept so a payload can be stored and handed back to the
    renderer exactly as the agent sent it.
    """

    model_config = ConfigDict(extra="allow")

    title: str = ""
    chart_type: str | None = None
    labels: list[Any]
    values: list[Any]
    sql: str | None = None
    axes: Any = None

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("chart_type", "sql", mode="before")
    @classmethod
    def _coerce_optional_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)

    @field_validator("labels", "values", mode="before")
    @classmethod
    def _require_sequence(cls, value: Any) -> list[Any]:
        if isinstance(value, tuple):
            return list(value)
        if not isinstance(value, list):
            raise ValueError("must be a sequence")
        return value

    @property
    def is_mixed(self) -> bool:
        return self.chart_type == MIXED_CHART_TYPE

    @property
    def is_multi_series(self) -> bool:
        return bool(self.values) and all(isinstance(item, dict) for item in self.values)

    def to_record(self) -> dict[str, Any]:
        return self.model_dump()


# ── Normalized content ──

@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class StructuredValue:
    value: Any


NormalizedContent = Union[PlainText, StructuredValue]


# ── Render decisions ──

@dataclass(frozen=True)
class TextReply:
    kind: ClassVar[str] = "text"
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "text": self.text}


@dataclass(frozen=True)
class ChartReference:
    kind: ClassVar[str] = "chart_reference"
    url: str
    chart_id: str
    cleaned_text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "url": self.url,
            "chart_id": self.chart_id,
            "cleaned_text": self.cleaned_text,
        }


@dataclass(frozen=True)
class InlineChart:
    kind: ClassVar[str] = "inline_chart"
    payload: ChartPayload

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "payload": self.payload.to_record()}


@dataclass(frozen=True)
class MixedChart:
    kind: ClassVar[str] = "mixed_chart"
    payload: ChartPayload

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "payload": self.payload.to_record()}


@dataclass(frozen=True)
class PlainObject:
    kind: ClassVar[str] = "plain_object"
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "value": self.value}


RenderDecision = Union[InlineChart, MixedChart, PlainObject]
ReplyDecision = Union[TextReply, ChartReference, InlineChart, MixedChart, PlainObject]
ChartDecision = Union[InlineChart, MixedChart]
