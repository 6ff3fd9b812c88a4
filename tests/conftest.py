"""Shared test fixtures."""

from __future__ import annotations

import base64
import json
from unittest.mock import AsyncMock

import pytest

from cv_gap_analyzer.clients.llm_client import LLMClient, LLMResponse
from cv_gap_analyzer.models.profile import CareerTarget, Profile
from cv_gap_analyzer.stores.base import StagedFile

SAMPLE_CV_TEXT = """Jane Doe
jane@example.com | +44 7700 900123

Experience:
- Acme Ltd (2021 - present) - Frontend Developer
  - Built React dashboards used by 20k customers
  - Migrated build tooling to Vite

Education:
- BSc Computer Science, University of Leeds (2017 - 2020)

Skills: JavaScript, React, Node.js, SQL
Certifications: AWS Certified Cloud Practitioner
"""


@pytest.fixture
def sample_cv_text() -> str:
    return SAMPLE_CV_TEXT


@pytest.fixture
def sample_profile() -> Profile:
    return Profile(
        id="doc-t1",
        talent_id="t1",
        fullname="Jane Doe",
        career_stage="mid",
        skills=["JavaScript", "React", "SQL"],
        degrees=["BSc Computer Science"],
        certifications=["AWS Certified Cloud Practitioner"],
        interests=["Web development"],
        selected_path="cp-frontend",
    )


@pytest.fixture
def profile_without_path(sample_profile) -> Profile:
    return sample_profile.model_copy(update={"selected_path": None})


@pytest.fixture
def sample_target() -> CareerTarget:
    return CareerTarget(
        id="cp-frontend",
        title="Frontend Engineer",
        required_skills=["JavaScript", "React", "TypeScript", "Testing"],
        required_certifications=["AWS Certified Cloud Practitioner", "AWS Developer Associate"],
        suggested_degrees=["BSc Computer Science"],
        tools_and_technologies=["Vite", "Jest"],
    )


@pytest.fixture
def sample_report_json() -> dict:
    return {
        "overallScore": 82,
        "strengths": ["Strong React experience"],
        "weaknesses": ["No TypeScript on CV"],
        "profileVsGaps": {
            "missingFromCV": ["Web development interest"],
            "missingFromProfile": ["Node.js"],
            "inconsistencies": [],
        },
        "careerAlignment": {
            "alignmentScore": 70,
            "matchingSkills": ["JavaScript", "React"],
            "missingSkills": ["TypeScript", "Testing"],
            "matchingCertifications": ["AWS Certified Cloud Practitioner"],
            "missingCertifications": ["AWS Developer Associate"],
            "relevantExperience": ["3 years building React dashboards"],
            "additionalRequirements": ["Add automated testing experience"],
        },
        "recommendations": ["Add Node.js to your profile"],
        "nextSteps": ["Learn TypeScript"],
        "marketability": {
            "score": 74,
            "summary": "Solid frontend profile",
            "competitiveAdvantages": ["Production React work"],
            "improvementAreas": ["Testing"],
        },
    }


@pytest.fixture
def file_bytes() -> bytes:
    return b"%PDF-1.4 fake cv bytes"


@pytest.fixture
def valid_payload(file_bytes) -> dict:
    return {
        "talentId": "t1",
        "fileName": "resume.pdf",
        "fileData": base64.b64encode(file_bytes).decode("ascii"),
    }


def llm_response(text: str) -> LLMResponse:
    return LLMResponse(text=text, input_tokens=100, output_tokens=50)


@pytest.fixture
def mock_llm_client(sample_cv_text, sample_report_json) -> LLMClient:
    """Mock LLM client whose two calls succeed with well-formed output."""
    client = AsyncMock(spec=LLMClient)
    client.generate_with_file = AsyncMock(return_value=llm_response(sample_cv_text))
    client.generate = AsyncMock(
        return_value=llm_response("```json\n" + json.dumps(sample_report_json) + "\n```")
    )
    return client


@pytest.fixture
def mock_profile_store(sample_profile):
    store = AsyncMock()
    store.find_by_key = AsyncMock(return_value=sample_profile)
    return store


@pytest.fixture
def mock_career_store(sample_target):
    store = AsyncMock()
    store.get_by_id = AsyncMock(return_value=sample_target)
    return store


@pytest.fixture
def mock_blob_store():
    store = AsyncMock()
    store.stage = AsyncMock(return_value=StagedFile(file_id="blob-1", owner="t1", size=22))
    store.release = AsyncMock(return_value=None)
    return store
