"""Task templates: reusable task blueprints stored at ``template:{id}``."""

import json
import logging
from datetime import UTC, datetime
from typing import Any

import pydantic

from src.core.errors import NotFoundError, StoreCorruptionError
from src.core.kv_store import KeyValueStore
from src.core.logging import span
from src.domain.create_models import TaskCreate, TemplateCreate, validate_payload
from src.domain.task import Task, TaskCategory
from src.domain.template import TaskTemplate
from src.modules.tasks import service
from src.modules.tasks.store import TaskStore, generate_id, validate_id


logger = logging.getLogger(__name__)

TEMPLATES_KEY = "templates"


def template_key(template_id: str) -> str:
    """Hash key for a template."""
    return f"template:{template_id}"


def _encode_template(template: TaskTemplate) -> tuple[dict[str, str], list[str]]:
    mapping: dict[str, str] = {}
    cleared: list[str] = []
    for name, value in template.model_dump(mode="json").items():
        if value is None:
            cleared.append(name)
        elif isinstance(value, dict | bool):
            mapping[name] = json.dumps(value)
        else:
            mapping[name] = str(value)
    return mapping, cleared


def _decode_template(key: str, raw: dict[str, str]) -> TaskTemplate:
    data: dict[str, Any] = dict(raw)
    try:
        if data.get("default_recurrence"):
            data["default_recurrence"] = json.loads(data["default_recurrence"])
        return TaskTemplate.model_validate(data)
    except (ValueError, pydantic.ValidationError) as e:
        raise StoreCorruptionError(key, str(e)) from e


async def _save_template(kv: KeyValueStore, template: TaskTemplate) -> None:
    mapping, cleared = _encode_template(template)
    key = template_key(template.id)
    await kv.hset(key, mapping)
    if cleared:
        await kv.hdel(key, *cleared)
    await kv.sadd(TEMPLATES_KEY, template.id)


async def get_template(kv: KeyValueStore, template_id: str) -> TaskTemplate:
    """Load a template.

    Raises:
        NotFoundError: If the template does not exist
    """
    validate_id(template_id, kind="template")
    key = template_key(template_id)
    raw = await kv.hgetall(key)
    if not raw:
        raise NotFoundError(f"Template not found: {template_id}")
    return _decode_template(key, raw)


async def create_template(
    kv: KeyValueStore,
    data: TemplateCreate | dict[str, Any],
    *,
    created_by: str,
    now: datetime | None = None,
) -> TaskTemplate:
    """Create a template owned by ``created_by``.

    Raises:
        ValidationError: If the payload is invalid
    """
    with span("templates.create_template"):
        payload = validate_payload(TemplateCreate, data)
        moment = now or datetime.now(UTC)

        template = TaskTemplate(
            id=generate_id("template", moment),
            name=payload.name,
            description=payload.description,
            instructions=payload.instructions,
            category=payload.category,
            priority=payload.priority,
            estimated_duration=payload.estimated_duration,
            default_recurrence=payload.default_recurrence.model_dump() if payload.default_recurrence else None,
            is_public=payload.is_public,
            created_by=created_by,
            usage_count=0,
            created_at=moment,
            updated_at=moment,
        )

        await _save_template(kv, template)
        logger.info("Created template %s (%s)", template.id, template.name)
        return template


async def list_templates(
    kv: KeyValueStore,
    user_id: str,
    *,
    category: TaskCategory | None = None,
    public: bool | None = None,
) -> list[TaskTemplate]:
    """Templates visible to a user: public ones and their own.

    Sorted by usage count, then newest first. Corrupt records are skipped.
    """
    with span("templates.list_templates"):
        templates: list[TaskTemplate] = []
        for template_id in sorted(await kv.smembers(TEMPLATES_KEY)):
            key = template_key(template_id)
            raw = await kv.hgetall(key)
            if not raw:
                continue
            try:
                template = _decode_template(key, raw)
            except StoreCorruptionError as e:
                logger.warning("Skipping corrupt template record: %s", e)
                continue
            if template.is_public or template.created_by == user_id:
                templates.append(template)

        if category is not None:
            templates = [t for t in templates if t.category == category]
        if public is not None:
            templates = [t for t in templates if t.is_public == public]

        templates.sort(key=lambda t: (-t.usage_count, -t.created_at.timestamp()))
        return templates


async def create_task_from_template(
    store: TaskStore,
    template_id: str,
    *,
    property_id: str,
    created_by: str,
    overrides: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> Task:
    """Create a task from a template's defaults and bump the template's usage count.

    Args:
        store: Task store
        template_id: Template to copy defaults from
        property_id: Property the task belongs to
        created_by: User ID of the creator
        overrides: Task fields that replace the template defaults (e.g. assigned_to, due_date)
        now: Current time

    Raises:
        NotFoundError: If the template does not exist
        ValidationError: If the resulting task is invalid
    """
    with span("templates.create_task_from_template"):
        template = await get_template(store.kv, template_id)
        moment = now or datetime.now(UTC)

        data: dict[str, Any] = {
            "title": template.name,
            "description": template.description,
            "instructions": template.instructions,
            "category": template.category,
            "priority": template.priority,
            "estimated_duration": template.estimated_duration,
            "recurrence": template.default_recurrence.model_dump() if template.default_recurrence else None,
            **(overrides or {}),
            "template_id": template.id,
        }
        task = await service.create_task(
            store,
            validate_payload(TaskCreate, data),
            property_id=property_id,
            created_by=created_by,
            now=moment,
        )

        used = template.model_copy(update={"usage_count": template.usage_count + 1, "updated_at": moment})
        await _save_template(store.kv, used)
        return task
