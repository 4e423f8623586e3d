"""Save flow for turning an accepted chart reply into a dashboard entry.

States::

    IDLE -> SELECTING_CATEGORY <-> CREATING_CATEGORY
    SELECTING_CATEGORY -> SAVING -> SAVED
                          SAVING -> FAILED -> SELECTING_CATEGORY

Saving is a two-write saga: the chart record is inserted first and its
generated id is then used for the dashboard entry. If the entry write fails,
the chart record just created is deleted again so no orphan is left behind.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, NoReturn, Protocol

from app.agents.chart.schemas import ChartDecision, ChartPayload, InlineChart, MixedChart
from app.modules.dashboard.exceptions import (
    AuthRequiredError,
    DashboardError,
    InvalidTransitionError,
    PersistenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_ICON = "📊"
UNTITLED_CHART_NAME = "Untitled chart"


class SaveState(str, Enum):
    IDLE = "idle"
    SELECTING_CATEGORY = "selecting_category"
    CREATING_CATEGORY = "creating_category"
    SAVING = "saving"
    SAVED = "saved"
    FAILED = "failed"


class ChartStore(Protocol):
    def insert(self, payload: dict) -> dict: ...

    def delete(self, chart_id: int) -> bool: ...


class CategoryStore(Protocol):
    def list_with_counts(self, user_id: str) -> list[dict]: ...

    def create(
        self,
        user_id: str,
        name: str,
        icon: str,
        description: str = "",
        color: str = "",
    ) -> dict: ...


class DashboardEntryStore(Protocol):
    def insert(self, chart_id: int, user_id: str, category_id: int, name: str) -> dict: ...


class DashboardPersistenceCoordinator:
    def __init__(
        self,
        chart_store: ChartStore,
        category_store: CategoryStore,
        entry_store: DashboardEntryStore,
        resolve_user_id: Callable[[], str | None],
        write_timeout: float | None = None,
        default_icon: str = DEFAULT_CATEGORY_ICON,
    ):
        self.chart_store = chart_store
        self.category_store = category_store
        self.entry_store = entry_store
        self.resolve_user_id = resolve_user_id
        self.write_timeout = write_timeout
        self.default_icon = default_icon or DEFAULT_CATEGORY_ICON

        self.state = SaveState.IDLE
        self.pending: ChartPayload | None = None
        self.pending_kind: str | None = None
        self.selected_category: dict | None = None
        self.categories: tuple[dict, ...] = ()
        self.categories_dirty = True
        self.last_error: DashboardError | None = None
        self.saved_chart_id: int | None = None
        self.saved_entry_id: int | None = None
        self.transitions: list[tuple[SaveState, SaveState]] = []
        self._fetch_seq = 0

    # ── helpers ──

    def _move(self, target: SaveState) -> None:
        logger.debug("Save flow %s -> %s", self.state.value, target.value)
        self.transitions.append((self.state, target))
        self.state = target

    def _require(self, action: str, *states: SaveState) -> None:
        if self.state not in states:
            raise InvalidTransitionError(f"Cannot {action} while {self.state.value}.")

    def _require_user(self) -> str:
        user_id = self.resolve_user_id()
        if not user_id:
            raise AuthRequiredError()
        return user_id

    async def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        call = asyncio.to_thread(func, *args, **kwargs)
        if self.write_timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.write_timeout)

    def _describe(self, exc: BaseException) -> str:
        if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
            return f"Timed out after {self.write_timeout}s."
        return str(exc) or exc.__class__.__name__

    def _fail(self, error: PersistenceError, cause: BaseException) -> NoReturn:
        self.last_error = error
        logger.warning("Chart save failed at %s step: %s", error.step, error.message)
        self._move(SaveState.FAILED)
        # The selected category is kept so the user can retry directly.
        self._move(SaveState.SELECTING_CATEGORY)
        raise error from cause

    async def _compensate(self, chart_id: int) -> bool:
        try:
            await self._call(self.chart_store.delete, chart_id)
        except Exception:  # noqa: BLE001
            logger.exception("Could not remove orphaned chart %s after entry write failed.", chart_id)
            return False
        logger.warning("Removed orphaned chart %s after entry write failed.", chart_id)
        return True

    async def _run_saga(
        self, payload: dict, user_id: str, category_id: int, name: str
    ) -> tuple[int, dict]:
        try:
            chart = await self._call(self.chart_store.insert, payload)
            chart_id = (chart or {}).get("id")
            if chart_id is None:
                raise RuntimeError("Chart store returned no id.")
        except Exception as exc:  # noqa: BLE001
            self._fail(PersistenceError("chart", self._describe(exc)), exc)

        logger.info("Chart %s stored for user %s", chart_id, user_id)

        try:
            entry = await self._call(
                self.entry_store.insert,
                chart_id=chart_id,
                user_id=user_id,
                category_id=category_id,
                name=name,
            )
        except asyncio.CancelledError:
            # Shielded so a second cancel cannot leave the chart behind.
            await asyncio.shield(self._compensate(chart_id))
            raise
        except Exception as exc:  # noqa: BLE001
            compensated = await self._compensate(chart_id)
            self._fail(
                PersistenceError("dashboard_entry", self._describe(exc), compensated=compensated),
                exc,
            )
        return chart_id, entry

    # ── transitions ──

    def request_save(self, decision: ChartDecision) -> None:
        self._require("start a save", SaveState.IDLE, SaveState.SAVED)
        if not isinstance(decision, (InlineChart, MixedChart)):
            raise ValidationError("Only chart replies can be saved to a dashboard.")

        self.pending = decision.payload
        self.pending_kind = decision.kind
        self.selected_category = None
        self.last_error = None
        self.saved_chart_id = None
        self.saved_entry_id = None
        self._move(SaveState.SELECTING_CATEGORY)

    def begin_create_category(self) -> None:
        self._require("create a category", SaveState.SELECTING_CATEGORY)
        self.last_error = None
        self._move(SaveState.CREATING_CATEGORY)

    def cancel_create_category(self) -> None:
        self._require("cancel category creation", SaveState.CREATING_CATEGORY)
        self._move(SaveState.SELECTING_CATEGORY)

    async def create_category(
        self,
        name: str,
        icon: str | None = None,
        description: str | None = None,
        color: str | None = None,
    ) -> dict:
        self._require("create a category", SaveState.CREATING_CATEGORY)
        clean_name = (name or "").strip()
        if not clean_name:
            self.last_error = ValidationError("Category name is required.")
            raise self.last_error
        user_id = self._require_user()

        try:
            category = await self._call(
                self.category_store.create,
                user_id=user_id,
                name=clean_name,
                icon=(icon or "").strip() or self.default_icon,
                description=(description or "").strip(),
                color=(color or "").strip(),
            )
        except Exception as exc:  # noqa: BLE001
            self.last_error = PersistenceError("category", self._describe(exc))
            logger.warning("Category creation failed: %s", self.last_error.message)
            raise self.last_error from exc

        logger.info("Category %s created for user %s", category.get("id"), user_id)
        self.categories_dirty = True
        try:
            await self.refresh_categories()
        except Exception:  # noqa: BLE001
            # The category exists; the list stays dirty and is refetched next time.
            logger.exception("Category list refresh failed after creating a category.")
        self.last_error = None
        self._move(SaveState.SELECTING_CATEGORY)
        return category

    async def refresh_categories(self) -> tuple[dict, ...]:
        """Replace the category snapshot with a fresh read (chart counts included)."""
        user_id = self._require_user()
        self._fetch_seq += 1
        seq = self._fetch_seq
        rows = await self._call(self.category_store.list_with_counts, user_id)
        if seq != self._fetch_seq:
            # A newer fetch started meanwhile; its snapshot wins.
            return self.categories

        self.categories = tuple(dict(row) for row in rows)
        self.categories_dirty = False
        if self.selected_category is not None:
            selected_id = self.selected_category.get("id")
            for category in self.categories:
                if category.get("id") == selected_id:
                    self.selected_category = category
                    break
        return self.categories

    def select_category(self, category: dict | None) -> None:
        self._require("select a category", SaveState.SELECTING_CATEGORY)
        self.selected_category = dict(category) if category is not None else None

    async def confirm(self) -> dict:
        if self.state is SaveState.SAVING:
            raise InvalidTransitionError("A save is already in progress.")
        self._require("save", SaveState.SELECTING_CATEGORY)

        if self.pending is None:
            raise ValidationError("There is no chart waiting to be saved.")
        if self.selected_category is None or self.selected_category.get("id") is None:
            self.last_error = ValidationError("Select a category before saving.")
            raise self.last_error
        user_id = self._require_user()

        category_id = self.selected_category["id"]
        payload = self.pending.to_record()
        name = self.pending.title.strip() or UNTITLED_CHART_NAME

        self.last_error = None
        self._move(SaveState.SAVING)
        try:
            chart_id, entry = await self._run_saga(payload, user_id, category_id, name)
        except asyncio.CancelledError:
            self._move(SaveState.SELECTING_CATEGORY)
            raise

        self.saved_chart_id = chart_id
        self.saved_entry_id = (entry or {}).get("id")
        self.pending = None
        self.pending_kind = None
        self.categories_dirty = True
        self._move(SaveState.SAVED)
        logger.info(
            "Dashboard entry %s saved (chart %s, category %s)",
            self.saved_entry_id,
            chart_id,
            category_id,
        )
        return {
            "chart_id": chart_id,
            "entry_id": self.saved_entry_id,
            "category_id": category_id,
            "name": name,
        }

    def reset(self) -> None:
        if self.state is SaveState.SAVING:
            raise InvalidTransitionError("Cannot reset while saving.")
        self.pending = None
        self.pending_kind = None
        self.selected_category = None
        self.last_error = None
        self.saved_chart_id = None
        self.saved_entry_id = None
        if self.state is not SaveState.IDLE:
            self._move(SaveState.IDLE)

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "pending_kind": self.pending_kind,
            "pending_title": self.pending.title if self.pending else None,
            "selected_category": self.selected_category,
            "categories": list(self.categories),
            "categories_dirty": self.categories_dirty,
            "last_error": _error_to_dict(self.last_error),
            "saved_chart_id": self.saved_chart_id,
            "saved_entry_id": self.saved_entry_id,
        }


def _error_to_dict(error: DashboardError | None) -> dict | None:
    if error is None:
        return None
    if isinstance(error, PersistenceError):
        return {"type": "persistence", **error.to_dict()}
    if isinstance(error, ValidationError):
        return {"type": "validation", "message": str(error)}
    return {"type": "error", "message": str(error)}
