"""Tests for the extraction and analysis stages with a mocked LLM."""

import json

import pytest

from cv_gap_analyzer.errors import AnalysisFailed, ExtractionFailed, MalformedResponse
from cv_gap_analyzer.models.report import AnalysisReport
from cv_gap_analyzer.pipeline.gap_analyst import GapAnalyst, build_prompt, join_or
from cv_gap_analyzer.pipeline.text_extractor import (
    EXTRACTION_PROMPT,
    TextExtractor,
    media_type_for,
)

from conftest import llm_response


class TestMediaType:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("cv.pdf", "application/pdf"),
            ("cv.JPG", "image/jpeg"),
            ("cv.jpeg", "image/jpeg"),
            ("cv.png", "image/png"),
            ("cv.doc", "application/msword"),
            ("cv.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
            ("cv.odt", "application/octet-stream"),
            ("cv", "application/octet-stream"),
        ],
    )
    def test_media_type_for(self, name, expected):
        assert media_type_for(name) == expected


class TestTextExtractor:
    async def test_returns_text_unmodified(self, mock_llm_client, sample_cv_text, file_bytes):
        extractor = TextExtractor(mock_llm_client)
        assert await extractor.extract_text(file_bytes, "cv.pdf") == sample_cv_text

    async def test_sends_file_with_instruction(self, mock_llm_client, file_bytes):
        extractor = TextExtractor(mock_llm_client, model="m-extract", temperature=0.3, max_tokens=2000)
        await extractor.extract_text(file_bytes, "cv.png")
        kwargs = mock_llm_client.generate_with_file.call_args.kwargs
        assert kwargs["prompt"] == EXTRACTION_PROMPT
        assert kwargs["file_bytes"] == file_bytes
        assert kwargs["media_type"] == "image/png"
        assert kwargs["model"] == "m-extract"
        assert kwargs["max_tokens"] == 2000

    async def test_unknown_extension_still_attempted(self, mock_llm_client, file_bytes):
        await TextExtractor(mock_llm_client).extract_text(file_bytes, "cv.rtf")
        kwargs = mock_llm_client.generate_with_file.call_args.kwargs
        assert kwargs["media_type"] == "application/octet-stream"

    async def test_model_error_wrapped(self, mock_llm_client, file_bytes):
        mock_llm_client.generate_with_file.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(ExtractionFailed, match="quota exceeded"):
            await TextExtractor(mock_llm_client).extract_text(file_bytes, "cv.pdf")

    async def test_short_text_rejected(self, mock_llm_client, file_bytes):
        mock_llm_client.generate_with_file.return_value = llm_response("   Jane Doe   \n\n" + " " * 100)
        with pytest.raises(ExtractionFailed, match="sufficient text"):
            await TextExtractor(mock_llm_client).extract_text(file_bytes, "cv.pdf")

    async def test_threshold_boundary(self, mock_llm_client, file_bytes):
        mock_llm_client.generate_with_file.return_value = llm_response("x" * 50)
        assert await TextExtractor(mock_llm_client).extract_text(file_bytes, "cv.pdf") == "x" * 50
        mock_llm_client.generate_with_file.return_value = llm_response("x" * 49)
        with pytest.raises(ExtractionFailed):
            await TextExtractor(mock_llm_client).extract_text(file_bytes, "cv.pdf")


class TestPrompt:
    def test_join_or(self):
        assert join_or(["a", "b"], "None listed") == "a, b"
        assert join_or([], "None listed") == "None listed"
        assert join_or(["", "  "], "None listed") == "None listed"

    def test_includes_cv_profile_and_target(self, sample_cv_text, sample_profile, sample_target):
        prompt = build_prompt(sample_cv_text, sample_profile, sample_target)
        assert sample_cv_text in prompt
        assert "- Career Stage: mid" in prompt
        assert "- Skills in Profile: JavaScript, React, SQL" in prompt
        assert "- Interests in Profile: Web development" in prompt
        assert "SELECTED CAREER PATH:" in prompt
        assert "- Title: Frontend Engineer" in prompt
        assert "- Tools & Technologies: Vite, Jest" in prompt
        assert '"careerAlignment"' in prompt
        assert "0 to 100" in prompt

    def test_empty_lists_get_placeholders(self, sample_cv_text):
        from cv_gap_analyzer.models.profile import CareerTarget, Profile

        profile = Profile(id="d", talent_id="t", fullname="X", career_stage="early")
        target = CareerTarget(id="c", title="Analyst")
        prompt = build_prompt(sample_cv_text, profile, target)
        assert "- Degrees in Profile: None listed" in prompt
        assert "- Required Certifications: Not specified" in prompt

    def test_no_target_asks_for_general_analysis(self, sample_cv_text, sample_profile):
        prompt = build_prompt(sample_cv_text, sample_profile, None)
        assert "NO CAREER PATH SELECTED" in prompt
        assert "general analysis" in prompt
        assert "SELECTED CAREER PATH:" not in prompt


class TestGapAnalyst:
    async def test_analyze(self, mock_llm_client, sample_cv_text, sample_profile, sample_target):
        report = await GapAnalyst(mock_llm_client).analyze(sample_cv_text, sample_profile, sample_target)
        assert isinstance(report, AnalysisReport)
        assert report.overall_score == 82
        assert report.career_alignment.missing_skills == ["TypeScript", "Testing"]

    async def test_uses_text_only_call(self, mock_llm_client, sample_cv_text, sample_profile):
        analyst = GapAnalyst(mock_llm_client, model="m-analysis", temperature=0.5, max_tokens=3000)
        await analyst.analyze(sample_cv_text, sample_profile, None)
        kwargs = mock_llm_client.generate.call_args.kwargs
        assert kwargs["model"] == "m-analysis"
        assert kwargs["temperature"] == 0.5
        assert sample_cv_text in kwargs["prompt"]
        mock_llm_client.generate_with_file.assert_not_called()

    async def test_out_of_range_scores_clamped(
        self, mock_llm_client, sample_cv_text, sample_profile, sample_report_json
    ):
        sample_report_json["overallScore"] = 150
        sample_report_json["careerAlignment"]["alignmentScore"] = -10
        sample_report_json["marketability"]["score"] = 1000
        mock_llm_client.generate.return_value = llm_response(json.dumps(sample_report_json))
        report = await GapAnalyst(mock_llm_client).analyze(sample_cv_text, sample_profile)
        assert report.scores() == [100, 0, 100]

    async def test_repairs_sloppy_output(self, mock_llm_client, sample_cv_text, sample_profile, sample_report_json):
        text = "Here you go:\n```json\n" + json.dumps(sample_report_json, indent=2)[:-1] + ",\n}\n```\nThanks!"
        mock_llm_client.generate.return_value = llm_response(text)
        report = await GapAnalyst(mock_llm_client).analyze(sample_cv_text, sample_profile)
        assert report.overall_score == 82

    @pytest.mark.parametrize(
        "field",
        [
            "overallScore",
            "strengths",
            "weaknesses",
            "profileVsGaps",
            "careerAlignment",
            "recommendations",
            "nextSteps",
            "marketability",
        ],
    )
    async def test_missing_required_field(
        self, mock_llm_client, sample_cv_text, sample_profile, sample_report_json, field
    ):
        del sample_report_json[field]
        mock_llm_client.generate.return_value = llm_response(json.dumps(sample_report_json))
        with pytest.raises(AnalysisFailed, match=f"Missing required field: {field}"):
            await GapAnalyst(mock_llm_client).analyze(sample_cv_text, sample_profile)

    async def test_empty_strengths_count_as_missing(
        self, mock_llm_client, sample_cv_text, sample_profile, sample_report_json
    ):
        sample_report_json["strengths"] = []
        mock_llm_client.generate.return_value = llm_response(json.dumps(sample_report_json))
        with pytest.raises(AnalysisFailed, match="strengths"):
            await GapAnalyst(mock_llm_client).analyze(sample_cv_text, sample_profile)

    async def test_empty_next_steps_allowed(
        self, mock_llm_client, sample_cv_text, sample_profile, sample_report_json
    ):
        sample_report_json["nextSteps"] = []
        mock_llm_client.generate.return_value = llm_response(json.dumps(sample_report_json))
        report = await GapAnalyst(mock_llm_client).analyze(sample_cv_text, sample_profile)
        assert report.next_steps == []

    async def test_wrong_shape(self, mock_llm_client, sample_cv_text, sample_profile, sample_report_json):
        sample_report_json["strengths"] = "just one string"
        mock_llm_client.generate.return_value = llm_response(json.dumps(sample_report_json))
        with pytest.raises(AnalysisFailed, match="invalid shape"):
            await GapAnalyst(mock_llm_client).analyze(sample_cv_text, sample_profile)

    async def test_unparseable_output(self, mock_llm_client, sample_cv_text, sample_profile):
        mock_llm_client.generate.return_value = llm_response("I am unable to help with that.")
        with pytest.raises(AnalysisFailed) as exc_info:
            await GapAnalyst(mock_llm_client).analyze(sample_cv_text, sample_profile)
        assert isinstance(exc_info.value.__cause__, MalformedResponse)

    async def test_model_error_wrapped(self, mock_llm_client, sample_cv_text, sample_profile):
        mock_llm_client.generate.side_effect = TimeoutError("timed out")
        with pytest.raises(AnalysisFailed, match="timed out"):
            await GapAnalyst(mock_llm_client).analyze(sample_cv_text, sample_profile)
