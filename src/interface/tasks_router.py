"""Task API router."""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, FastAPI, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.core.errors import (
    PermissionDeniedError,
    TaskServiceError,
    ValidationError,
    classify_error_with_response,
)
from src.domain.bulk import parse_bulk_operation
from src.domain.create_models import validate_payload
from src.domain.search import TaskSearchQuery
from src.domain.task import Task, TaskCategory, TaskPriority, TaskStatus
from src.domain.template import TaskTemplate
from src.domain.user import UserAccess
from src.interface.session import require_user
from src.models.service_models import BulkOperationResult, PersonalDashboard, TaskMetrics, TaskSearchResponse
from src.modules.tasks import analytics, bulk, search, service, templates
from src.modules.tasks.access import get_accessible_task_properties, get_user_access
from src.modules.tasks.store import TaskStore


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class PhotoUpload(BaseModel):
    """References to already-uploaded completion photos."""

    photos: list[str] = Field(default_factory=list)


class TemplateTaskRequest(BaseModel):
    """Fields overriding a template's defaults when creating a task from it."""

    property_id: str | None = None
    assigned_to: list[str] = Field(default_factory=list)
    due_date: datetime | None = None


def get_task_store(request: Request) -> TaskStore:
    """Task store attached to the application at startup."""
    return request.app.state.task_store


async def get_access(
    user_id: str = Depends(require_user),
    store: TaskStore = Depends(get_task_store),
) -> UserAccess:
    """Identity and accessible properties of the caller."""
    return await get_user_access(store.kv, user_id)


def _resolve_property(access: UserAccess, property_id: str | None) -> str:
    if property_id is None:
        if not access.property_ids:
            msg = "Property ID is required"
            raise ValidationError(msg)
        return access.property_ids[0]
    if property_id not in access.property_ids:
        msg = "You do not have access to this property"
        raise PermissionDeniedError(msg)
    return property_id


async def handle_task_service_error(_request: Request, exc: Exception) -> JSONResponse:
    """Render task service errors as JSON with a matching status code."""
    error = classify_error_with_response(exc)
    if error.http_status >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("task_api_error", extra={"code": error.code, "error": str(exc)})
    return JSONResponse(
        status_code=error.http_status,
        content={"error": error.message, "code": error.code, "suggestion": error.suggestion},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error handler for task service errors."""
    app.add_exception_handler(TaskServiceError, handle_task_service_error)


@router.get("/metrics", response_model=TaskMetrics)
async def get_metrics(
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> TaskMetrics:
    """Portfolio metrics over every task the caller can see."""
    tasks = await store.list_tasks_for_properties(access.property_ids)
    return analytics.task_metrics(tasks, datetime.now(UTC))


@router.get("/personal-dashboard", response_model=PersonalDashboard)
async def get_personal_dashboard(
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> PersonalDashboard:
    """Dashboard of the caller's own assigned tasks."""
    tasks = await store.list_tasks_for_properties(access.property_ids)
    return analytics.personal_dashboard(access.user_id, access.display_name, tasks, datetime.now(UTC))


@router.post("/search", response_model=TaskSearchResponse)
async def post_search(
    payload: dict[str, Any] = Body(...),
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> TaskSearchResponse:
    """Weighted full-text search with filters and pagination."""
    query = validate_payload(TaskSearchQuery, payload)
    tasks = await store.list_tasks_for_properties(access.property_ids)
    return search.search_tasks(tasks, query, now=datetime.now(UTC))


@router.post("/bulk", response_model=BulkOperationResult)
async def post_bulk(
    payload: dict[str, Any] = Body(...),
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> BulkOperationResult:
    """Apply one operation to many tasks."""
    operation = parse_bulk_operation(payload)
    task_properties = await get_accessible_task_properties(store.kv, access.property_ids)
    return await bulk.apply_bulk_operation(
        store,
        operation.task_ids,
        operation,
        set(task_properties),
        access.user_id,
        task_properties=task_properties,
    )


@router.get("/templates", response_model=list[TaskTemplate])
async def get_templates(
    category: TaskCategory | None = None,
    public: bool | None = None,
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> list[TaskTemplate]:
    """Public templates and the caller's own."""
    return await templates.list_templates(store.kv, access.user_id, category=category, public=public)


@router.post("/templates", response_model=TaskTemplate, status_code=status.HTTP_201_CREATED)
async def post_template(
    payload: dict[str, Any] = Body(...),
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> TaskTemplate:
    """Create a template."""
    return await templates.create_template(store.kv, payload, created_by=access.user_id)


@router.post("/templates/{template_id}/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
async def post_task_from_template(
    template_id: str,
    payload: dict[str, Any] = Body(...),
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> Task:
    """Create a task from a template."""
    data = validate_payload(TemplateTaskRequest, payload)
    property_id = _resolve_property(access, data.property_id)
    overrides = data.model_dump(exclude={"property_id"}, exclude_unset=True)
    return await templates.create_task_from_template(
        store,
        template_id,
        property_id=property_id,
        created_by=access.user_id,
        overrides=overrides,
    )


@router.get("", response_model=list[Task])
async def get_tasks(
    property_id: str | None = None,
    task_status: TaskStatus | None = Query(default=None, alias="status"),
    category: TaskCategory | None = None,
    priority: TaskPriority | None = None,
    assigned_to: str | None = None,
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> list[Task]:
    """List tasks, optionally narrowed to one property."""
    property_ids = [_resolve_property(access, property_id)] if property_id else access.property_ids
    return await service.list_tasks(
        store,
        property_ids,
        status=task_status,
        category=category,
        priority=priority,
        assigned_to=assigned_to,
    )


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def post_task(
    payload: dict[str, Any] = Body(...),
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> Task:
    """Create a task."""
    data = dict(payload)
    property_id = _resolve_property(access, data.pop("property_id", None))
    return await service.create_task(store, data, property_id=property_id, created_by=access.user_id)


@router.get("/{task_id}", response_model=Task)
async def get_task(
    task_id: str,
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> Task:
    """Get one task."""
    return await service.get_task(store, task_id, property_ids=access.property_ids)


@router.patch("/{task_id}", response_model=Task)
async def patch_task(
    task_id: str,
    patch: dict[str, Any] = Body(...),
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> Task:
    """Partially update a task."""
    return await service.update_task(
        store,
        task_id,
        patch,
        actor=access.user_id,
        property_ids=access.property_ids,
    )


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> JSONResponse:
    """Soft-delete a task."""
    await service.delete_task(store, task_id, property_ids=access.property_ids)
    return JSONResponse(content={"success": True})


@router.patch("/{task_id}/complete", response_model=Task)
async def complete_task(
    task_id: str,
    completion: dict[str, Any] | None = Body(default=None),
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> Task:
    """Complete a task assigned to the caller."""
    return await service.complete_task(
        store,
        task_id,
        completion or {},
        actor=access.user_id,
        property_ids=access.property_ids,
    )


@router.post("/{task_id}/photos", response_model=Task)
async def post_photos(
    task_id: str,
    payload: dict[str, Any] = Body(...),
    access: UserAccess = Depends(get_access),
    store: TaskStore = Depends(get_task_store),
) -> Task:
    """Attach completion photo references to a task."""
    return await service.add_completion_photos(
        store,
        task_id,
        validate_payload(PhotoUpload, payload).photos,
        actor=access.user_id,
        property_ids=access.property_ids,
    )

