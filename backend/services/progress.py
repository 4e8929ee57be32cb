"""Progress tracking for statement uploads.

Entries are keyed by (user id, upload id), the upload id being the SHA256 of
the uploaded file, so a client can poll while a large, chunked statement is
being processed. Two users uploading the same file get separate entries.
Stale entries expire after a TTL.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Any

from backend.parsers.chunking import Chunk

logger = logging.getLogger(__name__)

ProgressKey = tuple[str, str]

_upload_progress: dict[ProgressKey, dict[str, Any]] = {}
_progress_lock = threading.Lock()

# TTL for progress entries (15 minutes)
PROGRESS_TTL_SECONDS = 900

# Chunk extraction is reported inside this band of the overall percentage
EXTRACTION_START = 15
EXTRACTION_END = 80


def _cleanup_stale_entries() -> None:
    """Remove progress entries older than TTL. Caller must hold the lock."""
    current_time = time.time()
    stale_keys = [
        key
        for key, data in _upload_progress.items()
        if current_time - data.get("_created_at", 0) > PROGRESS_TTL_SECONDS
    ]
    for key in stale_keys:
        del _upload_progress[key]
        logger.debug(f"Cleaned up stale progress entry: {key[1][:8]}...")


def update_progress(
    user_id: str,
    upload_id: str,
    status: str,
    progress: int,
    message: str,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Record the current state of an upload.

    Args:
        user_id: Owner of the upload
        upload_id: Unique identifier for the upload
        status: Current status ("processing", "complete", "error")
        progress: Progress percentage (0-100)
        message: Human-readable status message
        details: Optional additional details
    """
    key = (user_id, upload_id)
    with _progress_lock:
        _cleanup_stale_entries()
        existing = _upload_progress.get(key, {})
        _upload_progress[key] = {
            "status": status,
            "progress": progress,
            "message": message,
            "details": details or {},
            "timestamp": datetime.now().isoformat(),
            "_created_at": existing.get("_created_at", time.time()),
        }

    logger.info(f"[PROGRESS] {upload_id[:8]}... → {progress}% - {message}")


def report_chunk(user_id: str, upload_id: str, chunk: Chunk, extracted: int, total_so_far: int) -> None:
    """Progress update after a chunk finishes, scaled into the extraction band."""
    span = EXTRACTION_END - EXTRACTION_START
    progress = EXTRACTION_START + int(chunk.index / chunk.total_chunks * span)
    update_progress(
        user_id,
        upload_id,
        "processing",
        progress,
        f"Processed chunk {chunk.label} - {total_so_far} transactions extracted",
        {"chunk": chunk.index, "total_chunks": chunk.total_chunks, "chunk_transactions": extracted},
    )


def get_progress(user_id: str, upload_id: str) -> dict[str, Any] | None:
    """
    Get current upload progress for one user.

    Returns:
        Progress data dict or None if this user has no such upload
    """
    with _progress_lock:
        data = _upload_progress.get((user_id, upload_id))
        if data is None:
            return None

        # Return a copy without internal fields
        return {k: v for k, v in data.items() if not k.startswith("_")}
