"""Canonical component and build models shared by the ledger and repository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class Component(BaseModel):
    """One purchased or planned part.

    ``quantity`` and ``price`` are ``None`` only when a stored value could not
    be read back as a number; the ledger never produces such entries.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    quantity: Optional[int] = None
    price: Optional[Decimal] = None

    model_config = ConfigDict(frozen=True)


class Build(BaseModel):
    """A named list of components, either the default build or one event."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    is_default: bool = False
    created_at: datetime
    components: List[Component] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
