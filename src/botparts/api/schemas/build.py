from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class ComponentPayload(BaseModel):
    name: Any = ""
    quantity: Any = None
    price: Any = None


class CreateBuildRequest(BaseModel):
    name: str = ""


class ComponentResponse(BaseModel):
    id: str
    name: str
    quantity: Optional[int]
    price: Optional[Decimal]
    price_display: str
    line_total: Decimal


class BuildResponse(BaseModel):
    id: str
    name: str
    is_default: bool
    created_at: datetime
    components: List[ComponentResponse]
    total_cost: Decimal
    total_display: str


class BuildSummaryResponse(BaseModel):
    id: str
    name: str
    is_default: bool
    created_at: datetime
    component_count: int
    total_cost: Decimal
    total_display: str


class BuildListResponse(BaseModel):
    builds: List[BuildSummaryResponse]
    active_build_id: Optional[str] = None
    rejected: List[str] = Field(default_factory=list)
