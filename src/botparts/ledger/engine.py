"""Pure list operations over a build's components.

Nothing here touches the store: every function takes the current list and
returns a new one, so validation failures never reach a write.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Iterable, List, Optional, Sequence
from uuid import uuid4

from botparts.errors import NotFoundError, ValidationError
from botparts.models import Component


DEFAULT_CURRENCY = "₹"
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ComponentDraft:
    """Raw form input for a component; values may be strings or numbers."""

    name: Any
    quantity: Any
    price: Any
    id: Optional[str] = None


def _parse_name(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    name = raw.strip()
    return name or None


def _parse_quantity(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        try:
            value = int(raw.strip())
        except ValueError:
            return None
    else:
        return None
    return value if value >= 0 else None


def _parse_price(raw: Any) -> Optional[Decimal]:
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float, str)):
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not value.is_finite() or value < 0:
        return None
    return value


def validate_draft(draft: ComponentDraft, *, component_id: str) -> Component:
    """Turn a draft into a Component or raise ValidationError naming bad fields."""

    name = _parse_name(draft.name)
    quantity = _parse_quantity(draft.quantity)
    price = _parse_price(draft.price)

    failed = []
    if name is None:
        failed.append("name")
    if quantity is None:
        failed.append("quantity")
    if price is None:
        failed.append("price")
    if failed:
        raise ValidationError(
            f"Invalid component fields: {', '.join(failed)}",
            fields=failed,
        )
    return Component(id=component_id, name=name, quantity=quantity, price=price)


def new_component_id() -> str:
    return uuid4().hex


def add_component(components: Sequence[Component], draft: ComponentDraft) -> List[Component]:
    """Return ``components`` with a validated new entry appended."""

    component = validate_draft(draft, component_id=new_component_id())
    return [*components, component]


def update_component(components: Sequence[Component], draft: ComponentDraft) -> List[Component]:
    """Replace the entry whose id matches ``draft.id``; order is unchanged."""

    if not draft.id or draft.id not in {component.id for component in components}:
        raise NotFoundError(f"Component {draft.id!r} not found")
    edited = validate_draft(draft, component_id=draft.id)
    return [edited if component.id == edited.id else component for component in components]


def remove_component(components: Sequence[Component], component_id: str) -> List[Component]:
    """Drop the matching entry. Unknown ids leave the list unchanged."""

    return [component for component in components if component.id != component_id]


def _digit_count(value: Decimal) -> int:
    return len(value.as_tuple().digits)


def _line_cost(component: Component) -> Decimal:
    try:
        price = Decimal(component.price)
        quantity = Decimal(component.quantity)
    except (TypeError, InvalidOperation):
        return Decimal("0")
    if not (price.is_finite() and quantity.is_finite()):
        return Decimal("0")
    # exact product: never round to the context precision
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, _digit_count(price) + _digit_count(quantity))
        return price * quantity


def total_cost(components: Iterable[Component]) -> Decimal:
    """Sum of price × quantity; unreadable values count as zero."""

    lines = [_line_cost(component) for component in components]
    if not lines:
        return Decimal("0")
    top = max(line.adjusted() for line in lines)
    bottom = min(line.as_tuple().exponent for line in lines)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, top - bottom + len(lines) + 1)
        return sum(lines, Decimal("0"))


def format_cost(amount: Decimal | int | float | None, currency: str = DEFAULT_CURRENCY) -> str:
    """Two-decimal display string, e.g. ``₹999.00``."""

    if amount is None:
        return "-"
    value = Decimal(str(amount))
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        value = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    return f"{currency}{value}"
