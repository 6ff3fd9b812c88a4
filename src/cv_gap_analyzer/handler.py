"""Serverless entry point.

Collaborators are built once per process by ``get_orchestrator`` and reused
across invocations; each invocation owns its own request state.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

from cv_gap_analyzer.clients.llm_client import LLMClient
from cv_gap_analyzer.config import AppConfig, load_config
from cv_gap_analyzer.models.response import AnalysisResponse
from cv_gap_analyzer.pipeline.orchestrator import INTERNAL_ERROR, PipelineOrchestrator
from cv_gap_analyzer.stores.blob_store import LocalBlobStore
from cv_gap_analyzer.stores.document_store import SQLiteDocumentStore

logger = logging.getLogger(__name__)

API_KEY_ENV = "ANTHROPIC_API_KEY"


def configure_logging() -> None:
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )


def build_orchestrator(config: AppConfig) -> PipelineOrchestrator:
    """Construct collaborators from config and environment.

    A missing API key leaves the model client unset; the orchestrator then
    answers every request with a configuration error instead of crashing.
    """
    api_key = os.getenv(API_KEY_ENV)
    llm = None
    if api_key:
        llm = LLMClient(
            api_key=api_key,
            timeout=config.llm.timeout,
            max_attempts=config.llm.max_attempts,
        )
    else:
        logger.error("%s is not set", API_KEY_ENV)

    documents = SQLiteDocumentStore(config.storage.resolved_db_path)
    blobs = LocalBlobStore(config.storage.resolved_blob_dir)
    return PipelineOrchestrator.from_config(config, llm, documents, documents, blobs)


@lru_cache(maxsize=1)
def _event_loop() -> asyncio.AbstractEventLoop:
    # One loop per process so the cached HTTP client stays bound to a live loop
    return asyncio.new_event_loop()


@lru_cache(maxsize=1)
def get_orchestrator() -> PipelineOrchestrator:
    load_dotenv()
    configure_logging()
    return build_orchestrator(load_config())


async def handle(body: str | bytes | dict | None, orchestrator: PipelineOrchestrator) -> tuple[dict, int]:
    """Parse a request body, run the pipeline and return (envelope, status)."""
    if isinstance(body, dict):
        payload = body
    else:
        try:
            payload = json.loads(body or "")
        except (TypeError, ValueError):
            response = AnalysisResponse.failure(400, "Invalid JSON input")
            return response.to_dict(), response.status_code

    response = await orchestrator.run(payload)
    return response.to_dict(), response.status_code


def lambda_handler(event, context):
    try:
        body = event.get("body") if isinstance(event, dict) else None
        if isinstance(event, dict) and event.get("isBase64Encoded") and isinstance(body, str):
            body = base64.b64decode(body)
        result, status = _event_loop().run_until_complete(handle(body, get_orchestrator()))
    except Exception:
        logger.error("Unhandled error in lambda_handler", exc_info=True)
        response = AnalysisResponse.failure(500, INTERNAL_ERROR)
        result, status = response.to_dict(), response.status_code
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(result),
    }
