"""Pairing records and conversation turns (Pydantic models).

Records come from the external search interface. Only the fields declared here are used for
filtering, ranking and rendering; anything else the store returns is kept as opaque payload and
passed back to the caller unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def duration_hours(value: Any) -> float:
    """Convert a duration given as decimal hours or `HH:MM` into hours.

    Unparseable values count as zero hours.
    """

    if value is None:
        return 0.0
    if isinstance(value, int | float):
        return float(value)

    text = str(value).strip()
    if not text:
        return 0.0

    if ":" in text:
        hours_part, _, minutes_part = text.partition(":")
        try:
            hours = int(hours_part or "0")
            minutes = int(minutes_part or "0")
        except ValueError:
            return 0.0
        return hours + minutes / 60

    try:
        return float(text)
    except ValueError:
        return 0.0


class Layover(BaseModel):
    """A rest period between duty days at an outstation."""

    model_config = ConfigDict(extra="allow", frozen=True, str_strip_whitespace=True)

    city: str = Field(validation_alias=AliasChoices("city", "airport"))
    duration: str | float = "0"

    @property
    def hours(self) -> float:
        return duration_hours(self.duration)


class Record(BaseModel):
    """A single pairing as returned by the record store."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
        str_strip_whitespace=True,
    )

    pairing_number: str
    credit_hours: float = 0.0
    block_hours: float = 0.0
    pairing_days: int = 1
    hold_probability: float = Field(default=0.0, ge=0, le=100)
    tafb: str | float | None = None
    layovers: list[Layover] = Field(default_factory=list)

    @field_validator("credit_hours", "block_hours", "hold_probability", mode="before")
    @classmethod
    def null_metric_is_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("pairing_days", mode="before")
    @classmethod
    def null_days_is_one(cls, value: Any) -> Any:
        return 1 if value is None else value

    @field_validator("layovers", mode="before")
    @classmethod
    def null_layovers_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def efficiency(self) -> float:
        """Credit/block ratio (0 when there is no block time)."""

        if self.block_hours <= 0:
            return 0.0
        return self.credit_hours / self.block_hours

    @property
    def max_layover_hours(self) -> float:
        return max((layover.hours for layover in self.layovers), default=0.0)

    def payload(self, key: str) -> Any:
        """Return an opaque payload field (e.g. `route`) or `None`."""

        return (self.model_extra or {}).get(key)


class ConversationTurn(BaseModel):
    """One message of the caller-owned conversation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    role: Literal["user", "assistant"]
    content: str


def recent_messages(
        history: Iterable[ConversationTurn] | None,
        *,
        window: int = 4,
) -> list[dict[str, str]]:
    """Return the last `window` turns as chat messages (oldest first)."""

    if not history or window <= 0:
        return []
    turns = list(history)[-window:]
    return [{"role": turn.role, "content": turn.content} for turn in turns]
