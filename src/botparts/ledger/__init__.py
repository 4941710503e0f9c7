"""Cost ledger: component list operations and totals."""

from .engine import (
    DEFAULT_CURRENCY,
    ComponentDraft,
    add_component,
    format_cost,
    remove_component,
    total_cost,
    update_component,
    validate_draft,
)

__all__ = [
    "DEFAULT_CURRENCY",
    "ComponentDraft",
    "add_component",
    "format_cost",
    "remove_component",
    "total_cost",
    "update_component",
    "validate_draft",
]
