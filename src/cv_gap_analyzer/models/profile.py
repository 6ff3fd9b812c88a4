"""Pydantic models for the stored talent profile and career path records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Profile(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    talent_id: str
    fullname: str = ""
    career_stage: str = ""  # "early", "mid", "transition", ...
    skills: list[str] = []
    degrees: list[str] = []
    certifications: list[str] = []
    interests: list[str] = []
    selected_path: str | None = None


class CareerTarget(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    required_skills: list[str] = []
    required_certifications: list[str] = []
    suggested_degrees: list[str] = []
    tools_and_technologies: list[str] = []
