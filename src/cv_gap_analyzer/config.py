"""Application configuration loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_ALLOWED_EXTENSIONS = (".pdf", ".jpg", ".jpeg", ".png", ".doc", ".docx")


@dataclass(frozen=True)
class LLMConfig:
    extraction_model: str = "claude-haiku-4-5-20251001"
    analysis_model: str = "claude-haiku-4-5-20251001"
    extraction_max_tokens: int = 2000
    extraction_temperature: float = 0.3
    analysis_max_tokens: int = 3000
    analysis_temperature: float = 0.5
    max_attempts: int = 1
    timeout: int = 60

    def __post_init__(self) -> None:
        if not 1 <= self.max_attempts <= 5:
            raise ValueError(f"max_attempts must be between 1 and 5, got {self.max_attempts}")
        if self.timeout < 1:
            raise ValueError(f"timeout must be at least 1 second, got {self.timeout}")
        for name in ("extraction_temperature", "analysis_temperature"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")


@dataclass(frozen=True)
class UploadConfig:
    max_file_bytes: int = 5 * 1024 * 1024
    allowed_extensions: tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS
    min_extracted_chars: int = 50

    def __post_init__(self) -> None:
        if self.max_file_bytes < 1:
            raise ValueError(f"max_file_bytes must be positive, got {self.max_file_bytes}")
        if self.min_extracted_chars < 0:
            raise ValueError(
                f"min_extracted_chars must not be negative, got {self.min_extracted_chars}"
            )
        # YAML gives us a list; normalise to lower-case dotted suffixes
        normalised = tuple(
            (ext if ext.startswith(".") else f".{ext}").lower()
            for ext in self.allowed_extensions
        )
        object.__setattr__(self, "allowed_extensions", normalised)


@dataclass(frozen=True)
class StorageConfig:
    db_path: str = "~/.cv-gap-analyzer/store.db"
    blob_dir: str = "~/.cv-gap-analyzer/blobs"
    usage_db_path: str = "~/.cv-gap-analyzer/usage.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()

    @property
    def resolved_blob_dir(self) -> Path:
        return Path(self.blob_dir).expanduser()

    @property
    def resolved_usage_db_path(self) -> Path:
        return Path(self.usage_db_path).expanduser()


@dataclass(frozen=True)
class FallbackConfig:
    templates_path: str | None = None
    overall_score: int = 65
    marketability_score: int = 55

    def __post_init__(self) -> None:
        for name in ("overall_score", "marketability_score"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be between 0 and 100, got {value}")


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    upload_raw = dict(raw.get("upload", {}))
    if "allowed_extensions" in upload_raw:
        upload_raw["allowed_extensions"] = tuple(upload_raw["allowed_extensions"])

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        upload=UploadConfig(**upload_raw),
        storage=StorageConfig(**raw.get("storage", {})),
        fallback=FallbackConfig(**raw.get("fallback", {})),
    )
