import logging
import threading
from collections import OrderedDict

from app.agents.chart import classify
from app.agents.chart.schemas import InlineChart, MixedChart
from app.core.config import settings
from app.core.identity import bound_user, resolve_current_user_id
from app.modules.dashboard.coordinator import DashboardPersistenceCoordinator
from app.modules.dashboard.exceptions import (
    AuthRequiredError,
    NotFoundError,
    ValidationError,
)
from app.modules.dashboard.repository import (
    CategoryRepository,
    ChartRepository,
    DashboardEntryRepository,
)
from app.modules.dashboard.schemas import CreateCategoryRequest

logger = logging.getLogger(__name__)


def _require_user(user_id: str | None) -> str:
    if not user_id:
        raise AuthRequiredError()
    return user_id


# Category, chart and entry services.
def list_categories(user_id: str | None) -> list[dict]:
    return CategoryRepository().list_with_counts(_require_user(user_id))


def create_category(user_id: str | None, request: CreateCategoryRequest) -> dict:
    owner = _require_user(user_id)
    name = (request.name or "").strip()
    if not name:
        raise ValidationError("Category name is required.")
    return CategoryRepository().create(
        user_id=owner,
        name=name,
        icon=(request.icon or "").strip() or settings.DEFAULT_CATEGORY_ICON,
        description=(request.description or "").strip(),
        color=(request.color or "").strip(),
    )


def _require_owned_chart(user_id: str | None, chart_id: int) -> str:
    owner = _require_user(user_id)
    if not DashboardEntryRepository().user_has_chart(owner, chart_id):
        raise NotFoundError("Chart not found")
    return owner


def get_chart(user_id: str | None, chart_id: int) -> dict:
    _require_owned_chart(user_id, chart_id)
    chart = ChartRepository().get(chart_id)
    if not chart:
        raise NotFoundError("Chart not found")
    return chart


def update_chart(user_id: str | None, chart_id: int, partial: dict) -> dict:
    _require_owned_chart(user_id, chart_id)
    chart = ChartRepository().update(chart_id, partial)
    if not chart:
        raise NotFoundError("Chart not found")
    return chart


def delete_chart(user_id: str | None, chart_id: int) -> None:
    _require_owned_chart(user_id, chart_id)
    if not ChartRepository().delete(chart_id):
        raise NotFoundError("Chart not found")


def list_entries(user_id: str | None, category_id: int | None = None) -> list[dict]:
    return DashboardEntryRepository().list_with_charts(_require_user(user_id), category_id=category_id)


def delete_entry(user_id: str | None, entry_id: int) -> None:
    if not DashboardEntryRepository().delete(_require_user(user_id), entry_id):
        raise NotFoundError("Dashboard entry not found")


# Save flows, one per (user, chat session).
class SaveFlowRegistry:
    def __init__(self, max_flows: int | None = None):
        self.max_flows = max_flows or settings.CHAT_MAX_SESSIONS
        self._flows: OrderedDict[tuple[str, str], DashboardPersistenceCoordinator] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def _key(user_id: str | None, session_id: str) -> tuple[str, str]:
        return (user_id or "", session_id)

    @staticmethod
    def _new_coordinator() -> DashboardPersistenceCoordinator:
        return DashboardPersistenceCoordinator(
            chart_store=ChartRepository(),
            category_store=CategoryRepository(),
            entry_store=DashboardEntryRepository(),
            resolve_user_id=resolve_current_user_id,
            write_timeout=settings.STORE_WRITE_TIMEOUT_SECONDS,
            default_icon=settings.DEFAULT_CATEGORY_ICON,
        )

    def get(self, user_id: str | None, session_id: str) -> DashboardPersistenceCoordinator | None:
        key = self._key(user_id, session_id)
        with self._lock:
            coordinator = self._flows.get(key)
            if coordinator is not None:
                self._flows.move_to_end(key)
            return coordinator

    def get_or_create(self, user_id: str | None, session_id: str) -> DashboardPersistenceCoordinator:
        key = self._key(user_id, session_id)
        with self._lock:
            coordinator = self._flows.get(key)
            if coordinator is None:
                coordinator = self._new_coordinator()
                self._flows[key] = coordinator
            self._flows.move_to_end(key)
            while len(self._flows) > self.max_flows:
                evicted, _ = self._flows.popitem(last=False)
                logger.info("Evicted idle save flow for session %s", evicted[1])
            return coordinator

    def discard(self, user_id: str | None, session_id: str) -> bool:
        with self._lock:
            return self._flows.pop(self._key(user_id, session_id), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._flows.clear()


flow_registry = SaveFlowRegistry()


def _get_flow(user_id: str | None, session_id: str) -> DashboardPersistenceCoordinator:
    coordinator = flow_registry.get(user_id, session_id)
    if coordinator is None:
        raise NotFoundError("No save in progress for this session")
    return coordinator


def _snapshot(session_id: str, coordinator: DashboardPersistenceCoordinator) -> dict:
    return {"session_id": session_id, **coordinator.snapshot()}


def get_flow(user_id: str | None, session_id: str) -> dict:
    return _snapshot(session_id, _get_flow(user_id, session_id))


async def start_save_flow(user_id: str | None, session_id: str, payload: dict) -> dict:
    decision = classify(payload)
    if not isinstance(decision, (InlineChart, MixedChart)):
        raise ValidationError("Payload is not a chart and cannot be saved to a dashboard.")

    coordinator = flow_registry.get_or_create(user_id, session_id)
    coordinator.reset()
    coordinator.request_save(decision)
    if user_id:
        with bound_user(user_id):
            await coordinator.refresh_categories()
    return _snapshot(session_id, coordinator)


def begin_new_category(user_id: str | None, session_id: str) -> dict:
    coordinator = _get_flow(user_id, session_id)
    coordinator.begin_create_category()
    return _snapshot(session_id, coordinator)


def cancel_new_category(user_id: str | None, session_id: str) -> dict:
    coordinator = _get_flow(user_id, session_id)
    coordinator.cancel_create_category()
    return _snapshot(session_id, coordinator)


async def create_flow_category(
    user_id: str | None, session_id: str, request: CreateCategoryRequest
) -> dict:
    coordinator = _get_flow(user_id, session_id)
    with bound_user(user_id):
        await coordinator.create_category(
            name=request.name,
            icon=request.icon,
            description=request.description,
            color=request.color,
        )
    return _snapshot(session_id, coordinator)


def select_flow_category(user_id: str | None, session_id: str, category_id: int | None) -> dict:
    coordinator = _get_flow(user_id, session_id)
    if category_id is None:
        coordinator.select_category(None)
        return _snapshot(session_id, coordinator)

    category = CategoryRepository().get(_require_user(user_id), category_id)
    if not category:
        raise ValidationError("Category not found.")
    coordinator.select_category(category)
    return _snapshot(session_id, coordinator)


async def confirm_flow(user_id: str | None, session_id: str) -> dict:
    coordinator = _get_flow(user_id, session_id)
    with bound_user(user_id):
        await coordinator.confirm()
    return _snapshot(session_id, coordinator)


def reset_flow(user_id: str | None, session_id: str) -> None:
    coordinator = _get_flow(user_id, session_id)
    coordinator.reset()
    flow_registry.discard(user_id, session_id)
