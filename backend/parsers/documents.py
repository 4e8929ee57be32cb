"""Decode uploaded statement files (PDF, CSV, TXT) into plain text."""

import json
import logging
from io import BytesIO
from typing import Literal

import pandas as pd
import pdfplumber

from backend.errors import EmptyContentError, StatementError, UnsupportedFormatError

logger = logging.getLogger(__name__)

FileType = Literal["pdf", "csv", "txt"]

SUPPORTED_MIME_TYPES: dict[str, FileType] = {
    "application/pdf": "pdf",
    "text/csv": "csv",
    "text/plain": "txt",
}

SUPPORTED_EXTENSIONS: dict[str, FileType] = {
    ".pdf": "pdf",
    ".csv": "csv",
    ".txt": "txt",
}

TEXT_ENCODINGS = ["utf-8", "utf-8-sig", "latin-1", "cp1252"]


def detect_file_type(filename: str | None, content_type: str | None) -> FileType:
    """
    Resolve the statement format from its MIME type, then its extension.

    Raises:
        UnsupportedFormatError: If neither identifies PDF, CSV, or TXT
    """
    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in SUPPORTED_MIME_TYPES:
        return SUPPORTED_MIME_TYPES[mime]

    filename_lower = (filename or "").lower()
    for extension, file_type in SUPPORTED_EXTENSIONS.items():
        if filename_lower.endswith(extension):
            return file_type

    raise UnsupportedFormatError(detail=f"{filename!r} ({content_type})")


def extract_text(contents: bytes, file_type: FileType) -> str:
    """
    Decode file bytes into the text handed to the extraction pipeline.

    Raises:
        UnsupportedFormatError: For an unknown file type
        StatementError: If the file cannot be read
    """
    if file_type == "pdf":
        return _extract_pdf_text(contents)
    if file_type == "csv":
        return _extract_csv_text(contents)
    if file_type == "txt":
        return _decode_text(contents)
    raise UnsupportedFormatError(detail=str(file_type))


def _extract_pdf_text(contents: bytes) -> str:
    """Page texts in order, each line's fragments joined with spaces."""
    pages = []
    try:
        with pdfplumber.open(BytesIO(contents)) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
    except Exception as e:
        logger.error(f"PDF extraction failed: {e}")
        raise StatementError("Failed to parse file", detail=f"PDF extraction failed: {e}") from e

    text = "\n".join(pages)
    if not text.strip():
        raise EmptyContentError("PDF appears to be empty or unreadable")

    logger.info(f"📄 PDF: Extracted {len(text)} chars from {len(pages)} pages")
    return text


def _extract_csv_text(contents: bytes) -> str:
    """CSV rows as a JSON array of row objects, one object per line."""
    df = None
    for encoding in TEXT_ENCODINGS:
        try:
            df = pd.read_csv(
                BytesIO(contents),
                encoding=encoding,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
            break
        except UnicodeDecodeError:
            continue
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            logger.error(f"CSV extraction failed: {e}")
            raise StatementError("Failed to parse file", detail=f"CSV extraction failed: {e}") from e

    if df is None:
        raise StatementError("Failed to parse file", detail="Failed to decode CSV with any supported encoding")

    records = df.to_dict(orient="records")
    logger.info(f"📊 CSV: Extracted {len(records)} rows")
    if not records:
        return "[]"
    return "[\n" + ",\n".join(json.dumps(record, ensure_ascii=False) for record in records) + "\n]"


def _decode_text(contents: bytes) -> str:
    for encoding in TEXT_ENCODINGS:
        try:
            return contents.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise StatementError("Failed to parse file", detail="Could not decode file with any supported encoding")
