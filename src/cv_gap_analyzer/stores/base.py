"""Collaborator interfaces consumed by the pipeline orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from cv_gap_analyzer.models.profile import CareerTarget, Profile


@dataclass(frozen=True)
class StagedFile:
    """Handle to a temporarily staged upload."""

    file_id: str
    owner: str
    size: int


class ProfileStore(Protocol):
    async def find_by_key(self, talent_id: str) -> Profile | None: ...


class CareerStore(Protocol):
    async def get_by_id(self, career_id: str) -> CareerTarget: ...


class BlobStore(Protocol):
    async def stage(self, data: bytes, owner: str) -> StagedFile: ...

    async def release(self, handle: StagedFile) -> None: ...
