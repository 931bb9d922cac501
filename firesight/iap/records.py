"""
Historical Incident Action Plan (IAP) records and match results.

IAP records are produced offline by a document-extraction pipeline and
loaded from JSON. The pydantic models below validate that JSON (camelCase
keys, as written by the extractor) and are frozen, since the collection is
read-only reference data for the life of the process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from firesight.incident import FuelType

logger = logging.getLogger(__name__)


class SectionType(str, Enum):
    """ICS form a section was extracted from."""

    ICS_202 = "ICS-202"  # Incident objectives
    ICS_203 = "ICS-203"  # Organization assignment
    ICS_204 = "ICS-204"  # Assignment list
    ICS_205 = "ICS-205"  # Communications
    ICS_220 = "ICS-220"  # Air operations
    GENERAL = "general"  # Unstructured text when no form was recognized


class Category(str, Enum):
    """Recommendation category an insight is requested for."""

    TACTICS = "tactics"
    RESOURCES = "resources"
    EVACUATION = "evacuation"


SECTION_CONTENT_LIMITS = {
    SectionType.ICS_202: 2000,
    SectionType.ICS_203: 2000,
    SectionType.ICS_204: 2000,
    SectionType.ICS_205: 1500,
    SectionType.ICS_220: 2000,
    SectionType.GENERAL: 3000,
}

RAW_TEXT_LIMIT = 5000


# =============================================================================
# Dataset Models
# =============================================================================


class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class IAPSection(_Record):
    """One typed section of an IAP."""

    type: SectionType
    content: str = ""
    extracted_data: dict[str, list[str]] = Field(default_factory=dict)

    @field_validator("content")
    @classmethod
    def _bound_content(cls, v: str, info: ValidationInfo) -> str:
        section_type = info.data.get("type")
        limit = SECTION_CONTENT_LIMITS.get(section_type, 2000)
        return v[:limit]

    @property
    def objectives(self) -> list[str]:
        return self.extracted_data.get("objectives", [])

    @property
    def resources(self) -> list[str]:
        return self.extracted_data.get("resources", [])

    @property
    def air_tactics(self) -> list[str]:
        return self.extracted_data.get("airTactics", [])


class IAPLocation(_Record):
    state: str | None = None
    county: str | None = None


class IAPWeather(_Record):
    wind_speed_mps: float | None = None
    humidity_pct: float | None = None


class IAPConditions(_Record):
    fuel: FuelType | None = None
    weather: IAPWeather | None = None
    acres: float | None = None

    @field_validator("fuel", mode="before")
    @classmethod
    def _unknown_fuel_is_none(cls, v: Any) -> Any:
        if v is None or isinstance(v, FuelType):
            return v
        if not isinstance(v, str):
            raise ValueError(f"fuel must be a string, got {type(v).__name__}")
        if v in {f.value for f in FuelType}:
            return v
        logger.debug(f"Ignoring unrecognized fuel type: {v!r}")
        return None


class IAPRecord(_Record):
    """A historical Incident Action Plan."""

    id: str
    incident_name: str
    date_created: str = "unknown"
    location: IAPLocation = Field(default_factory=IAPLocation)
    conditions: IAPConditions = Field(default_factory=IAPConditions)
    sections: tuple[IAPSection, ...] = ()
    tactical_lessons: tuple[str, ...] = ()
    raw_text: str = ""

    @field_validator("raw_text", mode="before")
    @classmethod
    def _bound_raw_text(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v[:RAW_TEXT_LIMIT] if isinstance(v, str) else v


def summarize_iaps(records: Iterable[IAPRecord]) -> dict[str, Any]:
    """Counts by fuel type plus total sections and lessons."""
    by_fuel: dict[str, int] = {}
    total = total_sections = total_lessons = 0

    for record in records:
        total += 1
        if record.conditions.fuel is not None:
            key = record.conditions.fuel.value
            by_fuel[key] = by_fuel.get(key, 0) + 1
        total_sections += len(record.sections)
        total_lessons += len(record.tactical_lessons)

    return {
        "total": total,
        "by_fuel": by_fuel,
        "total_sections": total_sections,
        "total_lessons": total_lessons,
    }


# =============================================================================
# Match Result
# =============================================================================


@dataclass(frozen=True)
class IAPInsight:
    """A historical IAP judged relevant to the current incident."""

    iap_id: str
    iap_name: str
    relevance_score: int
    tactical_snippet: str
    section_type: SectionType
    reasoning: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "iap_id": self.iap_id,
            "iap_name": self.iap_name,
            "relevance_score": self.relevance_score,
            "tactical_snippet": self.tactical_snippet,
            "section_type": self.section_type.value,
            "reasoning": list(self.reasoning),
        }
