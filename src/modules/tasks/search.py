"""Text search over task collections."""

import logging
from datetime import datetime
from typing import Any

from src.core.config import Constants
from src.core.errors import ValidationError
from src.domain.search import TaskSearchFilters, TaskSearchQuery
from src.domain.task import PRIORITY_RANK, Task
from src.models.service_models import TaskSearchResponse, TaskSearchResult
from src.modules.tasks.state_machine import effective_status


logger = logging.getLogger(__name__)

SORTABLE_FIELDS = frozenset(
    {
        "title",
        "category",
        "priority",
        "status",
        "due_date",
        "created_at",
        "updated_at",
        "completed_at",
        "estimated_duration",
        "quality_rating",
    }
)


def relevance_search(
    tasks: list[Task],
    query: str,
    limit: int = Constants.SEARCH_DEFAULT_LIMIT,
) -> list[TaskSearchResult]:
    """Case-insensitive substring match over title, description and instructions.

    Every hit gets the same relevance score; results keep input order.
    """
    needle = query.lower().strip()
    if not needle:
        return []

    results: list[TaskSearchResult] = []
    for task in tasks:
        matched = [
            name
            for name, value in (
                ("title", task.title),
                ("description", task.description),
                ("instructions", task.instructions),
            )
            if value and needle in value.lower()
        ]
        if matched:
            results.append(
                TaskSearchResult(task=task, relevance_score=Constants.SIMPLE_SEARCH_RELEVANCE, matched_fields=matched)
            )
        if len(results) >= limit:
            break

    return results


def _apply_filters(tasks: list[Task], filters: TaskSearchFilters, now: datetime | None) -> list[Task]:
    filtered = tasks
    if filters.status:
        filtered = [t for t in filtered if effective_status(t, now) in filters.status]
    if filters.priority:
        filtered = [t for t in filtered if t.priority in filters.priority]
    if filters.category:
        filtered = [t for t in filtered if t.category in filters.category]
    if filters.assignee:
        wanted = set(filters.assignee)
        filtered = [t for t in filtered if wanted.intersection(t.assigned_to)]
    if filters.date_range:
        start, end = filters.date_range.start, filters.date_range.end
        filtered = [t for t in filtered if t.due_date is not None and start <= t.due_date <= end]
    return filtered


def _score_task(task: Task, terms: list[str]) -> TaskSearchResult | None:
    score = 0.0
    matched: list[str] = []

    weighted_fields = (
        ("title", task.title, Constants.SEARCH_TITLE_WEIGHT),
        ("description", task.description, Constants.SEARCH_DESCRIPTION_WEIGHT),
        ("instructions", task.instructions, Constants.SEARCH_INSTRUCTIONS_WEIGHT),
    )
    for name, value, weight in weighted_fields:
        if not value:
            continue
        hits = sum(1 for term in terms if term in value.lower())
        if hits:
            score += hits * weight
            matched.append(name)

    # Labels add a flat bonus however many terms hit them
    for name, label in (("category", task.category.value), ("priority", task.priority.value)):
        if any(term in label.lower() for term in terms):
            score += Constants.SEARCH_LABEL_WEIGHT
            matched.append(name)

    if score <= 0:
        return None
    return TaskSearchResult(task=task, relevance_score=min(score, 1.0), matched_fields=matched)


def _field_sort_key(result: TaskSearchResult, field: str) -> Any:  # noqa: ANN401
    value = getattr(result.task, field)
    if field == "priority":
        return PRIORITY_RANK.get(value, 0)
    return value


def search_tasks(tasks: list[Task], search: TaskSearchQuery, *, now: datetime | None = None) -> TaskSearchResponse:
    """Weighted multi-term search with filters, sorting and pagination.

    Raises:
        ValidationError: If the query is shorter than two characters or the sort field is unknown
    """
    query = search.query.strip()
    if len(query) < Constants.SEARCH_MIN_QUERY_LENGTH:
        msg = f"Query must be at least {Constants.SEARCH_MIN_QUERY_LENGTH} characters"
        raise ValidationError(msg)

    if search.sort_by != "relevance" and search.sort_by not in SORTABLE_FIELDS:
        msg = f"Cannot sort by unknown field: {search.sort_by}"
        raise ValidationError(msg)

    terms = [term for term in query.lower().split() if term]
    results = [r for r in (_score_task(t, terms) for t in _apply_filters(tasks, search.filters, now)) if r is not None]

    if search.sort_by == "relevance":
        results.sort(key=lambda r: r.relevance_score, reverse=True)
    else:
        present = [r for r in results if getattr(r.task, search.sort_by) is not None]
        missing = [r for r in results if getattr(r.task, search.sort_by) is None]
        present.sort(key=lambda r: _field_sort_key(r, search.sort_by), reverse=search.sort_order == "desc")
        results = present + missing

    page = results[search.offset : search.offset + search.limit]
    logger.debug("Search %r matched %d tasks", query, len(results))
    return TaskSearchResponse(results=page, total=len(results), query=search.query)
