"""Usage logging data models."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from cv_gap_analyzer.models.response import AnalysisResponse


class UsageLog(BaseModel):
    """Single usage log entry for an analysis run."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=datetime.now)
    talent_id: str | None = None
    career_path_title: str | None = None
    file_name: str | None = None
    overall_score: int | None = None
    used_fallback: bool = False
    status_code: int = 200
    elapsed_ms: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    estimated_cost_usd: float = 0.0
    success: bool = True
    error_message: str | None = None

    @classmethod
    def from_response(
        cls,
        response: AnalysisResponse,
        *,
        talent_id: str | None = None,
        token_summary: dict | None = None,
        estimated_cost_usd: float = 0.0,
    ) -> UsageLog:
        """Build a log entry from a finished run's response envelope."""
        tokens = token_summary or {}
        meta = response.metadata
        return cls(
            talent_id=talent_id,
            career_path_title=meta.career_path.title if meta and meta.career_path else None,
            file_name=meta.file_name if meta else None,
            overall_score=response.analysis.overall_score if response.analysis else None,
            used_fallback=meta.used_fallback if meta else False,
            status_code=response.status_code,
            elapsed_ms=meta.execution_time if meta else 0,
            total_input_tokens=tokens.get("input", 0),
            total_output_tokens=tokens.get("output", 0),
            estimated_cost_usd=estimated_cost_usd,
            success=response.success,
            error_message=response.error,
        )
