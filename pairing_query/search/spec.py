"""Canonical search spec consumed by the record search interface."""

from __future__ import annotations

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SortKey(StrEnum):
    """Sort hints understood by the record store."""

    credit_hours = "creditHours"
    credit_block_ratio = "creditBlockRatio"
    hold_probability = "holdProbability"
    # Sentinel: the ranking engine decides the order.
    overall = "overall"


SortOrder = Literal["asc", "desc"]


class SearchSpec(BaseModel):
    """Filters for one bid package (record source), combined using logical AND.

    `search` is the store's single free-text field; it carries either a pairing number or a city.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    record_source_id: int
    search: str | None = None
    pairing_days: int | None = None
    pairing_days_min: int | None = None
    pairing_days_max: int | None = None
    credit_min: float | None = None
    credit_max: float | None = None
    block_min: float | None = None
    block_max: float | None = None
    tafb_min: float | None = None
    tafb_max: float | None = None
    hold_probability_min: float | None = Field(default=None, ge=0, le=100)
    efficiency: float | None = None
    sort_by: SortKey | None = None
    sort_order: SortOrder = "desc"
