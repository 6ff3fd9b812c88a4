"""Pydantic models for the gap-analysis report.

The same models back both the language-model path and the fallback path, so
score clamping lives here and applies regardless of where a report came from.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SCORE_MIN = 0
SCORE_MAX = 100


def clamp_score(value: object) -> int:
    """Coerce a score to int and clip it into [0, 100].

    Raises ValueError for values that are not numbers at all.
    """
    if isinstance(value, bool):
        raise ValueError("score must be a number, not a boolean")
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"score must be a number, got {value!r}") from exc
    if number != number:  # NaN
        raise ValueError("score must be a number, got NaN")
    return int(round(min(max(number, SCORE_MIN), SCORE_MAX)))


class _ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProfileVsGaps(_ReportModel):
    missing_from_cv: list[str] = Field(default=[], alias="missingFromCV")  # profile only
    missing_from_profile: list[str] = []  # CV only
    inconsistencies: list[str] = []


class CareerAlignment(_ReportModel):
    alignment_score: int = 0
    matching_skills: list[str] = []
    missing_skills: list[str] = []
    matching_certifications: list[str] = []
    missing_certifications: list[str] = []
    relevant_experience: list[str] = []
    additional_requirements: list[str] = []

    @field_validator("alignment_score", mode="before")
    @classmethod
    def _clamp(cls, v: object) -> int:
        return clamp_score(v)


class Marketability(_ReportModel):
    score: int = 0
    summary: str = ""
    competitive_advantages: list[str] = []
    improvement_areas: list[str] = []

    @field_validator("score", mode="before")
    @classmethod
    def _clamp(cls, v: object) -> int:
        return clamp_score(v)


class AnalysisReport(_ReportModel):
    overall_score: int
    strengths: list[str]
    weaknesses: list[str]
    profile_vs_gaps: ProfileVsGaps
    career_alignment: CareerAlignment
    recommendations: list[str]
    next_steps: list[str]
    marketability: Marketability

    @field_validator("overall_score", mode="before")
    @classmethod
    def _clamp(cls, v: object) -> int:
        return clamp_score(v)

    def scores(self) -> list[int]:
        """All numeric scores carried by the report."""
        return [
            self.overall_score,
            self.career_alignment.alignment_score,
            self.marketability.score,
        ]


# Top-level keys the model must return; checked before the report is built.
REQUIRED_FIELDS: tuple[str, ...] = (
    "overallScore",
    "strengths",
    "weaknesses",
    "profileVsGaps",
    "careerAlignment",
    "recommendations",
    "nextSteps",
    "marketability",
)
