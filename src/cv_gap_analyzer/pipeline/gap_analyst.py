"""Stage 2: Gap Analyst - Compares CV text against the profile and career path."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from cv_gap_analyzer.clients.llm_client import DEFAULT_MODEL, LLMClient
from cv_gap_analyzer.errors import AnalysisFailed, MalformedResponse
from cv_gap_analyzer.models.profile import CareerTarget, Profile
from cv_gap_analyzer.models.report import REQUIRED_FIELDS, AnalysisReport
from cv_gap_analyzer.utils.json_parser import sanitize_and_parse

logger = logging.getLogger(__name__)

# Fields that also count as missing when the model returns an empty list
NON_EMPTY_FIELDS = ("strengths", "weaknesses")

OUTPUT_SCHEMA = """\
{
  "overallScore": 85,
  "strengths": ["Strong technical skills", "Relevant experience"],
  "weaknesses": ["Missing key certification", "Limited leadership experience"],
  "profileVsGaps": {
    "missingFromCV": ["JavaScript", "Project Management"],
    "missingFromProfile": ["Python", "AWS Certification"],
    "inconsistencies": ["Experience level mismatch"]
  },
  "careerAlignment": {
    "alignmentScore": 75,
    "matchingSkills": ["React", "Node.js"],
    "missingSkills": ["Docker", "Kubernetes"],
    "matchingCertifications": ["AWS Developer"],
    "missingCertifications": ["AWS Solutions Architect"],
    "relevantExperience": ["2 years in web development"],
    "additionalRequirements": ["Need more backend experience"]
  },
  "recommendations": [
    "Add missing JavaScript skills to your profile",
    "Consider obtaining Docker certification"
  ],
  "nextSteps": [
    "Update your profile with skills found in CV",
    "Obtain missing certifications for your career path"
  ],
  "marketability": {
    "score": 78,
    "summary": "Strong foundation with room for improvement in key areas",
    "competitiveAdvantages": ["Diverse skill set", "Relevant projects"],
    "improvementAreas": ["Industry certifications", "Leadership experience"]
  }
}"""

SCORING_RULES = """\
Scoring rules:
- overallScore, careerAlignment.alignmentScore and marketability.score are integers from 0 to 100.
- profileVsGaps.missingFromCV lists items in the profile that the CV does not mention.
- profileVsGaps.missingFromProfile lists items in the CV that the profile does not list.
- Every key shown above must be present. Use empty lists rather than omitting a key."""

NO_CAREER_PATH_INSTRUCTION = """\
NO CAREER PATH SELECTED
The user has not chosen a career path. Give a general analysis that is not specific to any role.
Still return the careerAlignment object: set alignmentScore to 0, leave the matching and missing
lists empty and explain in additionalRequirements that no career path was selected."""


def join_or(items: list[str], placeholder: str) -> str:
    """Comma-join a list, or return the placeholder when it is empty."""
    cleaned = [item for item in items if item and item.strip()]
    return ", ".join(cleaned) if cleaned else placeholder


def build_prompt(cv_text: str, profile: Profile, target: CareerTarget | None) -> str:
    """Build the analysis prompt embedding the CV, profile and career path."""
    profile_block = f"""USER PROFILE:
- Name: {profile.fullname}
- Career Stage: {profile.career_stage}
- Skills in Profile: {join_or(profile.skills, "None listed")}
- Degrees in Profile: {join_or(profile.degrees, "None listed")}
- Certifications in Profile: {join_or(profile.certifications, "None listed")}
- Interests in Profile: {join_or(profile.interests, "None listed")}"""

    if target is not None:
        career_block = f"""SELECTED CAREER PATH:
- Title: {target.title}
- Required Skills: {join_or(target.required_skills, "Not specified")}
- Required Certifications: {join_or(target.required_certifications, "Not specified")}
- Suggested Degrees: {join_or(target.suggested_degrees, "Not specified")}
- Tools & Technologies: {join_or(target.tools_and_technologies, "Not specified")}"""
    else:
        career_block = NO_CAREER_PATH_INSTRUCTION

    return f"""Analyze this CV content against the user's profile and career path. Provide detailed insights.

CV CONTENT:
{cv_text}

{profile_block}

{career_block}

{SCORING_RULES}

Return ONLY valid JSON in exactly this shape:
{OUTPUT_SCHEMA}"""


def check_required_fields(data: dict) -> None:
    """Raise AnalysisFailed when a required top-level field is absent."""
    for name in REQUIRED_FIELDS:
        value = data.get(name)
        if value is None or (name in NON_EMPTY_FIELDS and not value):
            raise AnalysisFailed(f"Missing required field: {name}")


class GapAnalyst:
    def __init__(
        self,
        llm: LLMClient | None,
        model: str = DEFAULT_MODEL,
        *,
        temperature: float = 0.5,
        max_tokens: int = 3000,
    ):
        self.llm = llm
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def analyze(
        self,
        cv_text: str,
        profile: Profile,
        target: CareerTarget | None = None,
    ) -> AnalysisReport:
        """Analyse CV text and return a validated, score-clamped report.

        Raises:
            AnalysisFailed: the model call failed, its output could not be
                parsed, or the parsed object lacks required fields or has
                the wrong shape. Out-of-range scores are clamped, not rejected.
        """
        prompt = build_prompt(cv_text, profile, target)
        try:
            response = await self.llm.generate(
                prompt=prompt,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as exc:
            raise AnalysisFailed(f"Failed to analyze CV: {exc}") from exc

        try:
            data = sanitize_and_parse(response.text)
        except MalformedResponse as exc:
            raise AnalysisFailed(f"Failed to analyze CV: {exc}") from exc

        check_required_fields(data)
        try:
            report = AnalysisReport.model_validate(data)
        except ValidationError as exc:
            raise AnalysisFailed(f"Analysis has an invalid shape: {exc}") from exc

        logger.info("Analysis complete: overall score %d", report.overall_score)
        return report
