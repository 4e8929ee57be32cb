"""Statement upload processing service."""

import asyncio
import logging

from backend.config import settings
from backend.db.sqlite import Database
from backend.errors import ExtractionTimeoutError, StatementError
from backend.models import ProviderName, UploadResponse
from backend.parsers.chunking import Chunk
from backend.parsers.documents import detect_file_type, extract_text
from backend.parsers.generic import extract_statement_transactions
from backend.parsers.llm_client import ProviderGateway
from backend.parsers.validation import validate_file_contents
from backend.services.dedup import compute_file_hash
from backend.services.materializer import materialize_transactions
from backend.services.orchestrator import ChunkOrchestrator
from backend.services.progress import EXTRACTION_START, report_chunk, update_progress

logger = logging.getLogger(__name__)


async def process_upload(
    filename: str | None,
    content_type: str | None,
    contents: bytes,
    user_id: str,
    gateway: ProviderGateway,
    store: Database,
    preference: str | ProviderName | None = None,
    orchestrator: ChunkOrchestrator | None = None,
    timeout: float | None = None,
) -> UploadResponse:
    """
    Process an uploaded bank statement end to end.

    File checks -> text extraction -> LLM extraction -> validation and
    persistence for ``user_id``. The LLM stage is bounded by ``timeout``;
    when it expires the remaining chunk loop is cancelled.

    Raises:
        StatementError: Any failure, carrying its HTTP status
    """
    timeout = settings.request_timeout_seconds if timeout is None else timeout
    validate_file_contents(contents)
    upload_id = compute_file_hash(contents)
    file_type = detect_file_type(filename, content_type)

    logger.info(f"=== PROCESSING STATEMENT {filename} ({file_type}, {len(contents)} bytes) ===")
    update_progress(user_id, upload_id, "processing", 5, f"Reading {filename}...")

    try:
        content = extract_text(contents, file_type)

        update_progress(user_id, upload_id, "processing", EXTRACTION_START, "Extracting transactions with AI...")

        def on_chunk(chunk: Chunk, extracted: int, total_so_far: int) -> None:
            report_chunk(user_id, upload_id, chunk, extracted, total_so_far)

        try:
            raw_transactions = await asyncio.wait_for(
                extract_statement_transactions(
                    content,
                    gateway,
                    preference=preference,
                    orchestrator=orchestrator,
                    on_chunk=on_chunk,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise ExtractionTimeoutError(detail=f"exceeded {timeout}s") from e

        update_progress(user_id, upload_id, "processing", 85, f"Saving {len(raw_transactions)} transactions...")
        transactions = materialize_transactions(raw_transactions, user_id, store)

    except StatementError as e:
        logger.error(f"❌ Statement processing failed for {filename}: {e}")
        update_progress(user_id, upload_id, "error", 100, e.message)
        raise
    except Exception:
        logger.exception(f"❌ Unexpected error processing {filename}")
        update_progress(user_id, upload_id, "error", 100, StatementError.default_message)
        raise

    message = f"Successfully processed {len(transactions)} transactions"
    dropped = len(raw_transactions) - len(transactions)
    if dropped:
        message += f" ({dropped} invalid records skipped)"

    update_progress(
        user_id,
        upload_id,
        "complete",
        100,
        f"✅ {message}",
        {"transactions_added": len(transactions), "records_skipped": dropped},
    )
    logger.info(f"✅ {message} for {filename}")

    return UploadResponse(
        success=True,
        count=len(transactions),
        data=transactions,
        message=message,
        upload_id=upload_id,
    )

