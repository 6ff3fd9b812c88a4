"""Stage 1: Text Extractor - Reads the raw text out of an uploaded CV file."""

from __future__ import annotations

import logging

from cv_gap_analyzer.clients.llm_client import DEFAULT_MODEL, LLMClient
from cv_gap_analyzer.errors import ExtractionFailed
from cv_gap_analyzer.utils.upload_validator import file_extension

logger = logging.getLogger(__name__)

MIN_EXTRACTED_CHARS = 50
GENERIC_MEDIA_TYPE = "application/octet-stream"

MEDIA_TYPES: dict[str, str] = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

EXTRACTION_PROMPT = """\
Extract all text content from this CV/Resume document. Return the complete text as it appears in the document, maintaining structure where possible. Focus on extracting:
- Personal information
- Contact details
- Education
- Work experience
- Skills
- Certifications
- Projects
- Any other relevant information

Return only the extracted text, no additional formatting or commentary."""


def media_type_for(file_name: str) -> str:
    """Best-guess MIME type from the file extension; unknown types are not an error."""
    return MEDIA_TYPES.get(file_extension(file_name), GENERIC_MEDIA_TYPE)


class TextExtractor:
    def __init__(
        self,
        llm: LLMClient | None,
        model: str = DEFAULT_MODEL,
        *,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        min_chars: int = MIN_EXTRACTED_CHARS,
    ):
        self.llm = llm
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.min_chars = min_chars

    async def extract_text(self, file_bytes: bytes, file_name: str) -> str:
        """Extract the text of a CV file, returned exactly as the model produced it.

        Raises:
            ExtractionFailed: the model call failed or returned fewer than
                ``min_chars`` non-blank characters.
        """
        media_type = media_type_for(file_name)
        logger.info("Extracting text from %s (%s)", file_name, media_type)
        try:
            response = await self.llm.generate_with_file(
                prompt=EXTRACTION_PROMPT,
                file_bytes=file_bytes,
                media_type=media_type,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as exc:
            raise ExtractionFailed(f"Failed to extract text from CV: {exc}") from exc

        text = response.text
        if not text or len(text.strip()) < self.min_chars:
            raise ExtractionFailed("Could not extract sufficient text from CV")

        logger.info("Extracted %d characters from CV", len(text))
        return text
