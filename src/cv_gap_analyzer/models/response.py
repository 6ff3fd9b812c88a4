"""Pydantic models for the response envelope returned to callers."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from cv_gap_analyzer.models.profile import CareerTarget, Profile
from cv_gap_analyzer.models.report import AnalysisReport


class _EnvelopeModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TalentSnapshot(_EnvelopeModel):
    id: str
    fullname: str
    career_stage: str

    @classmethod
    def of(cls, profile: Profile) -> TalentSnapshot:
        return cls(id=profile.id, fullname=profile.fullname, career_stage=profile.career_stage)


class CareerPathSnapshot(_EnvelopeModel):
    id: str
    title: str

    @classmethod
    def of(cls, target: CareerTarget) -> CareerPathSnapshot:
        return cls(id=target.id, title=target.title)


class AnalysisMetadata(_EnvelopeModel):
    talent: TalentSnapshot
    career_path: CareerPathSnapshot | None = None
    file_name: str
    analyzed_at: datetime
    execution_time: int  # milliseconds
    used_fallback: bool = False


class AnalysisResponse(_EnvelopeModel):
    success: bool
    status_code: int
    analysis: AnalysisReport | None = None
    metadata: AnalysisMetadata | None = None
    error: str | None = None

    @classmethod
    def failure(cls, status_code: int, error: str) -> AnalysisResponse:
        return cls(success=False, status_code=status_code, error=error)

    def to_dict(self) -> dict:
        """Serialise to the camelCase wire format.

        Absent top-level fields are dropped; ``metadata.careerPath`` stays
        ``null`` when no career path was selected.
        """
        data = self.model_dump(by_alias=True, mode="json")
        return {key: value for key, value in data.items() if value is not None}
