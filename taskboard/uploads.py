"""Validation of multipart proof uploads.

Runs before the lifecycle engine sees the request, so a missing,
mistyped or oversized file never reaches a task.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile

from core.errors import ValidationError
from taskboard.config import ProofConfig


@dataclass(frozen=True)
class ProofUpload:
    content: bytes
    mime_type: str
    file_name: str


async def read_proof_upload(upload: Optional[UploadFile], config: ProofConfig) -> ProofUpload:
    """Read and validate an uploaded proof file.

    Reads at most one byte past the limit, so an oversized body is never
    held in memory in full.
    """
    if upload is None or not upload.filename:
        raise ValidationError("file is required")

    mime_type = (upload.content_type or "").split(";")[0].strip().lower()
    if mime_type not in config.allowed_mime_types:
        raise ValidationError("Only JPEG/PNG/MP3/WAV allowed")

    content = await upload.read(config.max_file_size + 1)
    if len(content) > config.max_file_size:
        limit_mb = config.max_file_size // (1024 * 1024)
        raise ValidationError(f"File exceeds the {limit_mb}MB limit")
    if not content:
        raise ValidationError("file is empty")

    return ProofUpload(content=content, mime_type=mime_type, file_name=upload.filename)
