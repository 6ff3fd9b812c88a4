"""Pre-flight validation of an analysis request payload.

Everything here runs before any store or model call: required fields,
allow-listed extension, size estimated from the base64 length, and decoding.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from cv_gap_analyzer.config import DEFAULT_ALLOWED_EXTENSIONS
from cv_gap_analyzer.errors import InputInvalid

MAX_FILE_BYTES = 5 * 1024 * 1024
REQUIRED_FIELDS = ("talentId", "fileData", "fileName")


@dataclass(frozen=True)
class ValidatedUpload:
    talent_id: str
    file_name: str
    extension: str
    file_bytes: bytes


def file_extension(file_name: str) -> str:
    """Lower-cased text from the last dot on, or '' when there is no dot."""
    dot = file_name.rfind(".")
    return file_name[dot:].lower() if dot != -1 else ""


def estimated_decoded_size(encoded: str) -> int:
    """Approximate decoded byte count of a base64 string (4 chars -> 3 bytes)."""
    return len(encoded) * 3 // 4


def validate_upload(
    payload: object,
    *,
    allowed_extensions: tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS,
    max_file_bytes: int = MAX_FILE_BYTES,
) -> ValidatedUpload:
    """Validate a request payload and decode its file.

    Raises InputInvalid on any violation.
    """
    if not isinstance(payload, dict):
        raise InputInvalid("Request body must be a JSON object")

    missing = [name for name in REQUIRED_FIELDS if not payload.get(name)]
    if missing:
        raise InputInvalid(
            "Missing required parameters: " + ", ".join(REQUIRED_FIELDS)
        )
    talent_id = payload["talentId"]
    file_data = payload["fileData"]
    file_name = payload["fileName"]
    for name, value in (("talentId", talent_id), ("fileData", file_data), ("fileName", file_name)):
        if not isinstance(value, str) or not value.strip():
            raise InputInvalid(f"{name} must be a non-empty string")

    extension = file_extension(file_name)
    if extension not in allowed_extensions:
        raise InputInvalid(
            "Unsupported file type. Please upload PDF, DOC, DOCX, or image files."
        )

    # Strip an optional data-URL prefix ("data:application/pdf;base64,...")
    if file_data.startswith("data:") and "," in file_data:
        file_data = file_data.split(",", 1)[1]
    file_data = "".join(file_data.split())

    if estimated_decoded_size(file_data) > max_file_bytes:
        limit_mb = max_file_bytes / (1024 * 1024)
        raise InputInvalid(f"File too large. Maximum size is {limit_mb:g}MB.")

    try:
        file_bytes = base64.b64decode(file_data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InputInvalid("fileData must be base64-encoded") from exc
    if not file_bytes:
        raise InputInvalid("fileData is empty")

    return ValidatedUpload(
        talent_id=talent_id,
        file_name=file_name,
        extension=extension,
        file_bytes=file_bytes,
    )
