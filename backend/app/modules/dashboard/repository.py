import json
import time
from typing import Any

from sqlalchemy import func
from sqlmodel import Session, delete, select

from app.core.database import app_engine
from app.modules.dashboard.models import Category, Chart, DashboardEntry

_CHART_FIELDS = ("title", "chart_type", "labels", "values", "sql", "axes")


def _encode_json(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def _decode_json(raw: str | None, default: Any = None) -> Any:
    if raw is None or raw == "":
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return default


def _decode_json_list(raw: Any) -> list:
    if isinstance(raw, list):
        return raw
    decoded = _decode_json(raw, default=[])
    return decoded if isinstance(decoded, list) else []


class ChartRepository:
    def __init__(self, engine=app_engine):
        self.engine = engine

    @staticmethod
    def _chart_to_dict(chart: Chart) -> dict:
        data = {
            "id": int(chart.id) if chart.id is not None else 0,
            "title": chart.title,
            "chart_type": chart.chart_type,
            "labels": _decode_json_list(chart.labels),
            "values": _decode_json_list(chart.values),
            "sql": chart.sql,
            "axes": _decode_json(chart.axes),
            "created_at": float(chart.created_at),
            "updated_at": float(chart.updated_at),
        }
        extra = _decode_json(chart.extra, default={})
        if isinstance(extra, dict):
            for key, value in extra.items():
                data.setdefault(key, value)
        return data

    @staticmethod
    def _apply_fields(chart: Chart, payload: dict) -> None:
        if "title" in payload:
            chart.title = str(payload.get("title") or "")
        if "chart_type" in payload:
            chart.chart_type = payload.get("chart_type")
        if "labels" in payload:
            chart.labels = _encode_json(list(payload.get("labels") or []))
        if "values" in payload:
            chart.values = _encode_json(list(payload.get("values") or []))
        if "sql" in payload:
            chart.sql = payload.get("sql")
        if "axes" in payload:
            chart.axes = _encode_json(payload.get("axes"))

    def insert(self, payload: dict) -> dict:
        now = time.time()
        chart = Chart(created_at=now, updated_at=now)
        self._apply_fields(chart, payload)
        extra = {key: value for key, value in payload.items() if key not in _CHART_FIELDS}
        chart.extra = _encode_json(extra) if extra else None

        with Session(self.engine) as session:
            session.add(chart)
            session.commit()
            session.refresh(chart)
            return self._chart_to_dict(chart)

    def get(self, chart_id: int) -> dict | None:
        with Session(self.engine) as session:
            chart = session.get(Chart, chart_id)
            return self._chart_to_dict(chart) if chart else None

    def update(self, chart_id: int, partial: dict) -> dict | None:
        with Session(self.engine) as session:
            chart = session.get(Chart, chart_id)
            if not chart:
                return None

            self._apply_fields(chart, partial)
            chart.updated_at = time.time()
            session.add(chart)
            session.commit()
            session.refresh(chart)
            return self._chart_to_dict(chart)

    def delete(self, chart_id: int) -> bool:
        with Session(self.engine) as session:
            chart = session.get(Chart, chart_id)
            if not chart:
                return False

            session.exec(delete(DashboardEntry).where(DashboardEntry.chart_id == chart_id))
            session.delete(chart)
            session.commit()
            return True


class CategoryRepository:
    def __init__(self, engine=app_engine):
        self.engine = engine

    @staticmethod
    def _category_to_dict(category: Category, chart_count: int = 0) -> dict:
        return {
            "id": int(category.id) if category.id is not None else 0,
            "name": category.name,
            "icon": category.icon,
            "description": category.description,
            "color": category.color,
            "chart_count": int(chart_count or 0),
            "created_at": float(category.created_at),
        }

    def list_with_counts(self, user_id: str) -> list[dict]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(Category, func.count(DashboardEntry.id))
                .join(
                    DashboardEntry,
                    DashboardEntry.category_id == Category.id,
                    isouter=True,
                )
                .where(Category.user_id == user_id)
                .group_by(Category.id)
                .order_by(Category.created_at.asc(), Category.id.asc())
            ).all()
            return [self._category_to_dict(category, count) for category, count in rows]

    def get(self, user_id: str, category_id: int) -> dict | None:
        with Session(self.engine) as session:
            category = session.exec(
                select(Category)
                .where(Category.id == category_id)
                .where(Category.user_id == user_id)
            ).first()
            if not category:
                return None

            count = session.exec(
                select(func.count(DashboardEntry.id)).where(
                    DashboardEntry.category_id == category_id
                )
            ).one()
            return self._category_to_dict(category, count)

    def create(
        self,
        user_id: str,
        name: str,
        icon: str,
        description: str = "",
        color: str = "",
    ) -> dict:
        category = Category(
            user_id=user_id,
            name=name,
            icon=icon,
            description=description,
            color=color,
            created_at=time.time(),
        )
        with Session(self.engine) as session:
            session.add(category)
            session.commit()
            session.refresh(category)
            return self._category_to_dict(category)


class DashboardEntryRepository:
    def __init__(self, engine=app_engine):
        self.engine = engine

    @staticmethod
    def _entry_to_dict(entry: DashboardEntry) -> dict:
        return {
            "id": int(entry.id) if entry.id is not None else 0,
            "chart_id": entry.chart_id,
            "user_id": entry.user_id,
            "category_id": entry.category_id,
            "name": entry.name,
            "created_at": float(entry.created_at),
        }

    def insert(self, chart_id: int, user_id: str, category_id: int, name: str) -> dict:
        entry = DashboardEntry(
            chart_id=chart_id,
            user_id=user_id,
            category_id=category_id,
            name=name,
            created_at=time.time(),
        )
        with Session(self.engine) as session:
            session.add(entry)
            session.commit()
            session.refresh(entry)
            return self._entry_to_dict(entry)

    def delete(self, user_id: str, entry_id: int) -> bool:
        with Session(self.engine) as session:
            entry = session.exec(
                select(DashboardEntry)
                .where(DashboardEntry.id == entry_id)
                .where(DashboardEntry.user_id == user_id)
            ).first()
            if not entry:
                return False

            session.delete(entry)
            session.commit()
            return True

    def list_with_charts(self, user_id: str, category_id: int | None = None) -> list[dict]:
        with Session(self.engine) as session:
            query = (
                select(DashboardEntry, Chart)
                .join(Chart, Chart.id == DashboardEntry.chart_id)
                .where(DashboardEntry.user_id == user_id)
                .order_by(DashboardEntry.created_at.desc(), DashboardEntry.id.desc())
            )
            if category_id is not None:
                query = query.where(DashboardEntry.category_id == category_id)

            results = []
            for entry, chart in session.exec(query).all():
                data = self._entry_to_dict(entry)
                data["chart"] = ChartRepository._chart_to_dict(chart)
                results.append(data)
            return results

    def user_has_chart(self, user_id: str, chart_id: int) -> bool:
        with Session(self.engine) as session:
            entry = session.exec(
                select(DashboardEntry.id)
                .where(DashboardEntry.user_id == user_id)
                .where(DashboardEntry.chart_id == chart_id)
            ).first()
            return entry is not None
