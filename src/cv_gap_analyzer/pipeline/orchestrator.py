"""Main pipeline orchestrator - validates, fetches, analyses, falls back, cleans up."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

from cv_gap_analyzer.clients.llm_client import DEFAULT_MODEL, LLMClient
from cv_gap_analyzer.config import DEFAULT_ALLOWED_EXTENSIONS, AppConfig
from cv_gap_analyzer.errors import (
    AnalyzerError,
    CleanupFailed,
    ConfigurationMissing,
    ProfileNotFound,
    StoreFailure,
)
from cv_gap_analyzer.models.profile import CareerTarget, Profile
from cv_gap_analyzer.models.report import AnalysisReport
from cv_gap_analyzer.models.response import (
    AnalysisMetadata,
    AnalysisResponse,
    CareerPathSnapshot,
    TalentSnapshot,
)
from cv_gap_analyzer.pipeline.fallback import FallbackReportBuilder, StageTemplates
from cv_gap_analyzer.pipeline.gap_analyst import GapAnalyst
from cv_gap_analyzer.pipeline.text_extractor import MIN_EXTRACTED_CHARS, TextExtractor
from cv_gap_analyzer.stores.base import BlobStore, CareerStore, ProfileStore, StagedFile
from cv_gap_analyzer.utils.upload_validator import (
    MAX_FILE_BYTES,
    ValidatedUpload,
    validate_upload,
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


class PipelineOrchestrator:
    """Runs one CV analysis request from payload to response envelope.

    The AI path (stage -> extract -> analyse) is attempted once; any failure
    in it is replaced by a fallback report. A staged file is released exactly
    once, whichever way the run ends.
    """

    def __init__(
        self,
        llm: LLMClient | None,
        profiles: ProfileStore | None,
        careers: CareerStore | None,
        blobs: BlobStore | None,
        *,
        fallback: FallbackReportBuilder | None = None,
        extraction_model: str = DEFAULT_MODEL,
        analysis_model: str = DEFAULT_MODEL,
        extraction_temperature: float = 0.3,
        extraction_max_tokens: int = 2000,
        analysis_temperature: float = 0.5,
        analysis_max_tokens: int = 3000,
        min_extracted_chars: int = MIN_EXTRACTED_CHARS,
        allowed_extensions: tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS,
        max_file_bytes: int = MAX_FILE_BYTES,
    ):
        self.llm = llm
        self.profiles = profiles
        self.careers = careers
        self.blobs = blobs
        self.extractor = TextExtractor(
            llm,
            model=extraction_model,
            temperature=extraction_temperature,
            max_tokens=extraction_max_tokens,
            min_chars=min_extracted_chars,
        )
        self.analyst = GapAnalyst(
            llm,
            model=analysis_model,
            temperature=analysis_temperature,
            max_tokens=analysis_max_tokens,
        )
        self.fallback = fallback or FallbackReportBuilder()
        self.allowed_extensions = allowed_extensions
        self.max_file_bytes = max_file_bytes

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        llm: LLMClient | None,
        profiles: ProfileStore | None,
        careers: CareerStore | None,
        blobs: BlobStore | None,
    ) -> PipelineOrchestrator:
        """Wire an orchestrator from loaded configuration and collaborators."""
        fallback = FallbackReportBuilder(
            StageTemplates.load(config.fallback.templates_path),
            overall_score=config.fallback.overall_score,
            marketability_score=config.fallback.marketability_score,
        )
        return cls(
            llm,
            profiles,
            careers,
            blobs,
            fallback=fallback,
            extraction_model=config.llm.extraction_model,
            analysis_model=config.llm.analysis_model,
            extraction_temperature=config.llm.extraction_temperature,
            extraction_max_tokens=config.llm.extraction_max_tokens,
            analysis_temperature=config.llm.analysis_temperature,
            analysis_max_tokens=config.llm.analysis_max_tokens,
            min_extracted_chars=config.upload.min_extracted_chars,
            allowed_extensions=config.upload.allowed_extensions,
            max_file_bytes=config.upload.max_file_bytes,
        )

    def check_configuration(self) -> None:
        """Raise ConfigurationMissing naming every collaborator that is not set."""
        missing = [
            name
            for name, value in (
                ("llm", self.llm),
                ("profiles", self.profiles),
                ("careers", self.careers),
                ("blobs", self.blobs),
            )
            if value is None
        ]
        if missing:
            raise ConfigurationMissing(
                "Missing required server configuration: " + ", ".join(missing)
            )

    async def run(self, payload: object) -> AnalysisResponse:
        """Process one request payload. Never raises for ordinary exceptions."""
        start = time.monotonic()
        staged: list[StagedFile] = []
        logger.info("=== CV analysis started ===")

        try:
            self.check_configuration()
            upload = validate_upload(
                payload,
                allowed_extensions=self.allowed_extensions,
                max_file_bytes=self.max_file_bytes,
            )
            profile = await self._fetch_profile(upload.talent_id)
            target = await self._fetch_career_target(profile)

            try:
                report = await self._run_ai_path(upload, profile, target, staged)
                used_fallback = False
            except Exception as exc:
                logger.warning("AI analysis failed: %s, using fallback", exc)
                report = self.fallback.build(profile, target)
                used_fallback = True
            finally:
                await self._release_staged(staged)

            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.info(
                "Analysis completed in %dms %s",
                elapsed_ms,
                "(fallback)" if used_fallback else "(AI)",
            )
            return self._success(report, upload, profile, target, elapsed_ms, used_fallback)

        except AnalyzerError as exc:
            logger.warning("Request rejected (%d): %s", exc.status_code, exc)
            return AnalysisResponse.failure(exc.status_code, str(exc))
        except Exception:
            logger.error("Unexpected error", exc_info=True)
            await self._release_staged(staged)
            return AnalysisResponse.failure(500, INTERNAL_ERROR)

    async def _fetch_profile(self, talent_id: str) -> Profile:
        try:
            profile = await self.profiles.find_by_key(talent_id)
        except Exception as exc:
            logger.error("Profile lookup failed for %s", talent_id, exc_info=True)
            raise StoreFailure("Failed to fetch talent information") from exc
        if profile is None:
            raise ProfileNotFound("Talent not found")
        logger.info("Fetched talent: %s", profile.fullname)
        return profile

    async def _fetch_career_target(self, profile: Profile) -> CareerTarget | None:
        """Fetch the selected career path; a failed lookup means no target."""
        if not profile.selected_path:
            return None
        try:
            target = await self.careers.get_by_id(profile.selected_path)
        except Exception as exc:
            logger.warning("Could not fetch career path %s: %s", profile.selected_path, exc)
            return None
        logger.info("Fetched career path: %s", target.title)
        return target

    async def _run_ai_path(
        self,
        upload: ValidatedUpload,
        profile: Profile,
        target: CareerTarget | None,
        staged: list[StagedFile],
    ) -> AnalysisReport:
        handle = await self.blobs.stage(upload.file_bytes, owner=upload.talent_id)
        staged.append(handle)
        logger.info("Temporarily staged file: %s", handle.file_id)

        cv_text = await self.extractor.extract_text(upload.file_bytes, upload.file_name)
        return await self.analyst.analyze(cv_text, profile, target)

    async def _release_staged(self, staged: list[StagedFile]) -> None:
        """Release and forget every staged file; failures are logged only."""
        while staged:
            handle = staged.pop()
            try:
                await self.blobs.release(handle)
                logger.info("Deleted temporary file: %s", handle.file_id)
            except Exception as exc:
                cleanup_error = CleanupFailed(
                    f"Failed to delete temporary file {handle.file_id}: {exc}"
                )
                logger.error("%s", cleanup_error, exc_info=True)

    @staticmethod
    def _success(
        report: AnalysisReport,
        upload: ValidatedUpload,
        profile: Profile,
        target: CareerTarget | None,
        elapsed_ms: int,
        used_fallback: bool,
    ) -> AnalysisResponse:
        return AnalysisResponse(
            success=True,
            status_code=200,
            analysis=report,
            metadata=AnalysisMetadata(
                talent=TalentSnapshot.of(profile),
                career_path=CareerPathSnapshot.of(target) if target is not None else None,
                file_name=upload.file_name,
                analyzed_at=datetime.now(timezone.utc),
                execution_time=elapsed_ms,
                used_fallback=used_fallback,
            ),
        )
