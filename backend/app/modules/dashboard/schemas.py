from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class CategorySchema(BaseModel):
    id: int
    name: str
    icon: str
    description: str = ""
    color: str = ""
    chart_count: int = 0
    created_at: Optional[float] = None


class CreateCategoryRequest(BaseModel):
    name: str
    icon: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class ChartSchema(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    title: str
    chart_type: Optional[str] = None
    labels: list[Any] = Field(default_factory=list)
    values: list[Any] = Field(default_factory=list)
    sql: Optional[str] = None
    axes: Any = None
    created_at: float
    updated_at: float


class UpdateChartRequest(BaseModel):
    title: Optional[str] = None
    chart_type: Optional[str] = None
    labels: Optional[list[Any]] = None
    values: Optional[list[Any]] = None
    sql: Optional[str] = None
    axes: Optional[dict[str, Any]] = None


class DashboardEntrySchema(BaseModel):
    id: int
    chart_id: int
    user_id: str
    category_id: int
    name: str
    created_at: float
    chart: ChartSchema


# ── Save flow ──

class StartSaveRequest(BaseModel):
    payload: dict[str, Any]


class SelectCategoryRequest(BaseModel):
    category_id: Optional[int] = None


class SaveFlowSnapshot(BaseModel):
    session_id: str
    state: str
    pending_kind: Optional[str] = None
    pending_title: Optional[str] = None
    selected_category: Optional[dict[str, Any]] = None
    categories: list[dict[str, Any]] = Field(default_factory=list)
    categories_dirty: bool = True
    last_error: Optional[dict[str, Any]] = None
    saved_chart_id: Optional[int] = None
    saved_entry_id: Optional[int] = None
