"""Fallback report built from profile data alone, used when the AI path fails.

The report satisfies the same contract as a model-produced one. Stage-specific
wording comes from a YAML template lookup keyed by career-stage label.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel

from cv_gap_analyzer.models.profile import CareerTarget, Profile
from cv_gap_analyzer.models.report import (
    AnalysisReport,
    CareerAlignment,
    Marketability,
    ProfileVsGaps,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_PATH = Path(__file__).resolve().parent.parent / "data" / "stage_templates.yaml"
DEFAULT_STAGE = "default"
DEFAULT_OVERALL_SCORE = 65
DEFAULT_MARKETABILITY_SCORE = 55

ANALYSIS_UNAVAILABLE = "Analysis unavailable"
NO_CAREER_PATH = "No career path selected for comparison"


class StageTemplate(BaseModel):
    alignment_baseline: int = 50
    strengths: list[str]
    weaknesses: list[str]
    recommendations: list[str]
    next_steps: list[str]


class StageTemplates:
    """Career-stage label -> StageTemplate, with a required ``default`` entry."""

    def __init__(self, templates: dict[str, StageTemplate]):
        if DEFAULT_STAGE not in templates:
            raise ValueError(f"Stage templates must define a '{DEFAULT_STAGE}' entry")
        self.templates = {key.strip().lower(): value for key, value in templates.items()}

    @classmethod
    def load(cls, path: str | Path | None = None) -> StageTemplates:
        """Load templates from YAML; the packaged file is used when path is None."""
        path = Path(path) if path is not None else DEFAULT_TEMPLATES_PATH
        if not path.exists():
            raise FileNotFoundError(f"Stage templates not found: {path}")
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return cls({str(key): StageTemplate(**value) for key, value in raw.items()})

    def for_stage(self, career_stage: str | None) -> StageTemplate:
        key = (career_stage or "").strip().lower()
        return self.templates.get(key, self.templates[DEFAULT_STAGE])

    def stages(self) -> list[str]:
        return sorted(self.templates)


def _render(lines: list[str], **values: str) -> list[str]:
    rendered = []
    for line in lines:
        try:
            rendered.append(line.format(**values))
        except (KeyError, IndexError, ValueError):
            # Unknown placeholder in a custom template: keep the raw line
            rendered.append(line)
    return rendered


def matching(held: list[str], required: list[str]) -> list[str]:
    """Items of ``held`` that are also required, in held order, without duplicates."""
    required_set = set(required)
    return list(dict.fromkeys(item for item in held if item in required_set))


def missing(held: list[str], required: list[str]) -> list[str]:
    """Required items not held, in required order, without duplicates."""
    held_set = set(held)
    return list(dict.fromkeys(item for item in required if item not in held_set))


class FallbackReportBuilder:
    def __init__(
        self,
        templates: StageTemplates | None = None,
        *,
        overall_score: int = DEFAULT_OVERALL_SCORE,
        marketability_score: int = DEFAULT_MARKETABILITY_SCORE,
    ):
        self.templates = templates or StageTemplates.load()
        self.overall_score = overall_score
        self.marketability_score = marketability_score

    def build(self, profile: Profile, target: CareerTarget | None = None) -> AnalysisReport:
        """Build a contract-complete report without calling the model."""
        template = self.templates.for_stage(profile.career_stage)
        stage_label = profile.career_stage or "current"
        path_title = target.title if target is not None else ""

        recommendations = _render(
            template.recommendations, career_stage=stage_label, career_path=path_title
        )
        if target is not None:
            recommendations.append(f"Focus on developing skills for {target.title}")
        else:
            recommendations.append("Select a career path for targeted advice")

        report = AnalysisReport(
            overall_score=self.overall_score,
            strengths=_render(template.strengths, career_stage=stage_label, career_path=path_title),
            weaknesses=_render(template.weaknesses, career_stage=stage_label, career_path=path_title),
            profile_vs_gaps=ProfileVsGaps(
                missing_from_cv=[ANALYSIS_UNAVAILABLE],
                missing_from_profile=[ANALYSIS_UNAVAILABLE],
                inconsistencies=["Could not perform comparison"],
            ),
            career_alignment=self._alignment(profile, target, template.alignment_baseline),
            recommendations=recommendations,
            next_steps=_render(template.next_steps, career_stage=stage_label, career_path=path_title),
            marketability=Marketability(
                score=self.marketability_score,
                summary="Basic analysis available - upload a clear CV for detailed insights",
                competitive_advantages=["Profile information available"],
                improvement_areas=["Need complete CV analysis", "Profile optimization"],
            ),
        )
        logger.info(
            "Built fallback report for stage %r (career path: %s)",
            profile.career_stage,
            target.title if target is not None else None,
        )
        return report

    @staticmethod
    def _alignment(
        profile: Profile, target: CareerTarget | None, baseline: int
    ) -> CareerAlignment:
        if target is None:
            return CareerAlignment(alignment_score=0, additional_requirements=[NO_CAREER_PATH])
        return CareerAlignment(
            alignment_score=baseline,
            matching_skills=matching(profile.skills, target.required_skills),
            missing_skills=missing(profile.skills, target.required_skills),
            matching_certifications=matching(profile.certifications, target.required_certifications),
            missing_certifications=missing(profile.certifications, target.required_certifications),
            relevant_experience=["Based on profile information only"],
            additional_requirements=["Complete CV analysis for detailed insights"],
        )
