import time
from typing import Optional

from sqlmodel import Field, SQLModel


class Category(SQLModel, table=True):
    __tablename__ = "dashboard_categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    icon: str = Field(default="📊")
    description: str = Field(default="")
    color: str = Field(default="")
    created_at: float = Field(default_factory=time.time)


class Chart(SQLModel, table=True):
    __tablename__ = "charts"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(default="")
    chart_type: Optional[str] = None
    labels: str = Field(default="[]")  # JSON-encoded list
    values: str = Field(default="[]")  # JSON-encoded list (numbers or series objects)
    sql: Optional[str] = None
    axes: Optional[str] = None  # JSON-encoded axis config
    extra: Optional[str] = None  # JSON-encoded keys the agent sent beyond the known ones
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)


class DashboardEntry(SQLModel, table=True):
    __tablename__ = "dashboard_entries"

    id: Optional[int] = Field(default=None, primary_key=True)
    chart_id: int = Field(foreign_key="charts.id", index=True)
    user_id: str = Field(index=True)
    category_id: int = Field(foreign_key="dashboard_categories.id", index=True)
    name: str
    created_at: float = Field(default_factory=time.time)
