from fastapi import APIRouter, Depends, HTTPException

from app.core.identity import get_current_user_id
from app.modules.dashboard import service
from app.modules.dashboard.exceptions import (
    AuthRequiredError,
    DashboardError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.modules.dashboard.schemas import (
    CategorySchema,
    ChartSchema,
    CreateCategoryRequest,
    DashboardEntrySchema,
    SaveFlowSnapshot,
    SelectCategoryRequest,
    StartSaveRequest,
    UpdateChartRequest,
)

router = APIRouter(tags=["Dashboard"], prefix="/v1/dashboard")


def _to_http(exc: DashboardError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, AuthRequiredError):
        return HTTPException(status_code=401, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, PersistenceError):
        return HTTPException(status_code=502, detail=exc.to_dict())
    return HTTPException(status_code=500, detail=str(exc))


# ── Categories ──

@router.get("/categories", response_model=list[CategorySchema])
def list_categories_endpoint(user_id: str | None = Depends(get_current_user_id)):
    try:
        return service.list_categories(user_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.post("/categories", response_model=CategorySchema)
def create_category_endpoint(
    request: CreateCategoryRequest,
    user_id: str | None = Depends(get_current_user_id),
):
    try:
        return service.create_category(user_id, request)
    except DashboardError as exc:
        raise _to_http(exc) from exc


# ── Charts ──

@router.get("/charts/{chart_id}", response_model=ChartSchema)
def get_chart_endpoint(chart_id: int, user_id: str | None = Depends(get_current_user_id)):
    try:
        return service.get_chart(user_id, chart_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.patch("/charts/{chart_id}", response_model=ChartSchema)
def update_chart_endpoint(
    chart_id: int,
    request: UpdateChartRequest,
    user_id: str | None = Depends(get_current_user_id),
):
    try:
        return service.update_chart(user_id, chart_id, request.model_dump(exclude_unset=True))
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.delete("/charts/{chart_id}")
def delete_chart_endpoint(chart_id: int, user_id: str | None = Depends(get_current_user_id)):
    try:
        service.delete_chart(user_id, chart_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc
    return {"status": "deleted"}


# ── Dashboard entries ──

@router.get("/entries", response_model=list[DashboardEntrySchema])
def list_entries_endpoint(
    category_id: int | None = None,
    user_id: str | None = Depends(get_current_user_id),
):
    try:
        return service.list_entries(user_id, category_id=category_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.delete("/entries/{entry_id}")
def delete_entry_endpoint(entry_id: int, user_id: str | None = Depends(get_current_user_id)):
    try:
        service.delete_entry(user_id, entry_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc
    return {"status": "deleted"}


# ── Save flow ──

@router.get("/flows/{session_id}", response_model=SaveFlowSnapshot)
def get_flow_endpoint(session_id: str, user_id: str | None = Depends(get_current_user_id)):
    try:
        return service.get_flow(user_id, session_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.post("/flows/{session_id}/start", response_model=SaveFlowSnapshot)
async def start_flow_endpoint(
    session_id: str,
    request: StartSaveRequest,
    user_id: str | None = Depends(get_current_user_id),
):
    try:
        return await service.start_save_flow(user_id, session_id, request.payload)
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.post("/flows/{session_id}/category/new", response_model=SaveFlowSnapshot)
def begin_new_category_endpoint(
    session_id: str, user_id: str | None = Depends(get_current_user_id)
):
    try:
        return service.begin_new_category(user_id, session_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.post("/flows/{session_id}/category/cancel", response_model=SaveFlowSnapshot)
def cancel_new_category_endpoint(
    session_id: str, user_id: str | None = Depends(get_current_user_id)
):
    try:
        return service.cancel_new_category(user_id, session_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.post("/flows/{session_id}/category", response_model=SaveFlowSnapshot)
async def create_flow_category_endpoint(
    session_id: str,
    request: CreateCategoryRequest,
    user_id: str | None = Depends(get_current_user_id),
):
    try:
        return await service.create_flow_category(user_id, session_id, request)
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.post("/flows/{session_id}/select", response_model=SaveFlowSnapshot)
def select_flow_category_endpoint(
    session_id: str,
    request: SelectCategoryRequest,
    user_id: str | None = Depends(get_current_user_id),
):
    try:
        return service.select_flow_category(user_id, session_id, request.category_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.post("/flows/{session_id}/confirm", response_model=SaveFlowSnapshot)
async def confirm_flow_endpoint(session_id: str, user_id: str | None = Depends(get_current_user_id)):
    try:
        return await service.confirm_flow(user_id, session_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc


@router.delete("/flows/{session_id}")
def reset_flow_endpoint(session_id: str, user_id: str | None = Depends(get_current_user_id)):
    try:
        service.reset_flow(user_id, session_id)
    except DashboardError as exc:
        raise _to_http(exc) from exc
    return {"status": "reset"}
