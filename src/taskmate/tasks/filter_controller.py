# src/taskmate/tasks/filter_controller.py

"""
Filter/sort controller.

Holds the current filter and sort direction and announces every change as a
RefetchRequested event. It performs no I/O: whoever subscribes runs the fetch.
One change -> exactly one event; nothing is coalesced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any

from ..core.events import Signal
from .task_models import SortDirection, TaskFilter, TaskStatus, parse_day

logger = logging.getLogger(__name__)

FILTER_FIELDS = ("status", "due_date")

# Field aliases accepted from front ends (the server spells it dueDate).
_FIELD_ALIASES = {"dueDate": "due_date", "due": "due_date"}


@dataclass(frozen=True, slots=True)
class RefetchRequested:
    task_filter: TaskFilter
    sort: SortDirection


def _coerce_status(value: Any) -> TaskStatus | None:
    if value is None or (isinstance(value, str) and value.strip().lower() in ("", "any", "all")):
        return None
    return TaskStatus.parse(value)


def _coerce_day(value: Any) -> date | None:
    if isinstance(value, str) and value.strip().lower() in ("any", "all"):
        return None
    return parse_day(value)


class FilterController:
    def __init__(self, *, sort: SortDirection = SortDirection.ASC) -> None:
        self._default_sort = sort
        self._filter = TaskFilter()
        self._sort = sort
        self.refetch_requested: Signal[RefetchRequested] = Signal("refetch")

    @property
    def task_filter(self) -> TaskFilter:
        return self._filter

    @property
    def sort(self) -> SortDirection:
        return self._sort

    def current(self) -> RefetchRequested:
        return RefetchRequested(self._filter, self._sort)

    def set_filter(self, field: str, value: Any) -> None:
        """
        Merge one field into the filter and request a refetch.

        `field` is "status" or "due_date". An empty value clears the field.
        Raises ValueError for an unknown field or an unparsable value.
        """
        name = _FIELD_ALIASES.get(field, field)
        if name == "status":
            self._filter = replace(self._filter, status=_coerce_status(value))
        elif name == "due_date":
            self._filter = replace(self._filter, due_date=_coerce_day(value))
        else:
            raise ValueError(f"Unknown filter field: {field!r} (expected one of {FILTER_FIELDS})")
        logger.debug("Filter changed: %s", self._filter)
        self._request()

    def toggle_sort(self) -> SortDirection:
        self._sort = self._sort.flipped()
        logger.debug("Sort direction: %s", self._sort.value)
        self._request()
        return self._sort

    def reset(self) -> None:
        """Back to defaults (any status, any date, default sort); also requests a fetch."""
        self._filter = TaskFilter()
        self._sort = self._default_sort
        self._request()

    def _request(self) -> None:
        self.refetch_requested.emit(self.current())
