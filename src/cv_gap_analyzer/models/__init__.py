"""Data models for the CV gap-analysis pipeline."""

from cv_gap_analyzer.models.profile import CareerTarget, Profile
from cv_gap_analyzer.models.report import (
    AnalysisReport,
    CareerAlignment,
    Marketability,
    ProfileVsGaps,
)
from cv_gap_analyzer.models.response import (
    AnalysisMetadata,
    AnalysisResponse,
    CareerPathSnapshot,
    TalentSnapshot,
)

__all__ = [
    "AnalysisMetadata",
    "AnalysisReport",
    "AnalysisResponse",
    "CareerAlignment",
    "CareerPathSnapshot",
    "CareerTarget",
    "Marketability",
    "Profile",
    "ProfileVsGaps",
    "TalentSnapshot",
]
