"""Intent JSON schema (Pydantic models).

This schema is the contract between free text (rules pre-pass or LLM) and the deterministic part of
the pipeline. Wire keys are camelCase (`pairingDays`, `needsClarification`, ...); unknown filter
keys are rejected.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator, model_validator
from pydantic.alias_generators import to_camel

DEFAULT_CLARIFICATION_QUESTION = (
    "Could you provide more details about what you're looking for? "
    "(e.g., trip length, credit hours, hold probability)"
)


class RankingMode(StrEnum):
    """Supported ranking modes."""

    credit = "credit"
    efficiency = "efficiency"
    hold_probability = "hold_probability"
    overall = "overall"
    none = "none"


class Filters(BaseModel):
    """Search filters combined using logical AND."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    pairing_number: str | None = Field(default=None, min_length=1)
    pairing_days: int | None = Field(default=None, ge=1)
    pairing_days_min: int | None = Field(default=None, ge=1)
    pairing_days_max: int | None = Field(default=None, ge=1)
    credit_min: float | None = Field(default=None, ge=0)
    credit_max: float | None = Field(default=None, ge=0)
    block_min: float | None = Field(default=None, ge=0)
    block_max: float | None = Field(default=None, ge=0)
    tafb_min: float | None = Field(default=None, ge=0)
    tafb_max: float | None = Field(default=None, ge=0)
    hold_probability_min: float | None = Field(default=None, ge=0, le=100)
    efficiency: float | None = Field(default=None, gt=0)
    city: str | None = Field(default=None, min_length=1)

    @field_validator("city")
    @classmethod
    def city_upper(cls, value: str | None) -> str | None:
        return value.upper() if value is not None else None

    @model_validator(mode="after")
    def validate_bounds(self) -> Filters:
        """Validate that every min/max pair is well-formed (`min <= max`)."""

        pairs = (
            ("pairing_days_min", "pairing_days_max"),
            ("credit_min", "credit_max"),
            ("block_min", "block_max"),
            ("tafb_min", "tafb_max"),
        )
        for low_name, high_name in pairs:
            low = getattr(self, low_name)
            high = getattr(self, high_name)
            if low is not None and high is not None and low > high:
                raise ValueError(f"{low_name} must be <= {high_name}")
        return self

    def active(self) -> dict[str, Any]:
        """Return the set filters keyed by their wire names."""

        return self.model_dump(by_alias=True, exclude_none=True)

    def is_empty(self) -> bool:
        return not self.active()


class Intent(BaseModel):
    """A fully validated query intent."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    filters: Filters = Field(default_factory=Filters)
    ranking: RankingMode = RankingMode.none
    limit: PositiveInt | None = None
    needs_clarification: bool = False
    clarification_question: str | None = None

    @field_validator("ranking", mode="before")
    @classmethod
    def null_ranking_is_none(cls, value: Any) -> Any:
        return RankingMode.none if value is None else value

    @model_validator(mode="after")
    def validate_clarification(self) -> Intent:
        """A clarification question is required exactly when clarification is needed."""

        if self.needs_clarification and not self.clarification_question:
            raise ValueError("clarificationQuestion is required when needsClarification=true")
        if not self.needs_clarification and self.clarification_question is not None:
            raise ValueError("clarificationQuestion is only allowed when needsClarification=true")
        return self

    def has_criteria(self) -> bool:
        """Whether the intent discriminates records at all (any filter or a ranking)."""

        return not self.filters.is_empty() or self.ranking != RankingMode.none


def clarification_intent(question: str = DEFAULT_CLARIFICATION_QUESTION) -> Intent:
    """Build an intent that only asks the user a follow-up question."""

    return Intent(needs_clarification=True, clarification_question=question)


def intent_from_obj(obj: Any) -> Intent:
    """Validate and parse an Intent from an arbitrary decoded JSON object."""

    return Intent.model_validate(obj)
