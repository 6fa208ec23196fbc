"""
Text extraction from uploaded files.

PDF pages are read with PyMuPDF; ``.txt`` and ``.md`` files are read as
UTF-8 with a latin-1 fallback.  Files over 10 MB are refused.
"""

import logging
import mimetypes
from pathlib import Path
from typing import List, Optional

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB

_TEXT_SUFFIXES = (".txt", ".md")


class FileExtractionError(Exception):
    """Raised when a file cannot be turned into text.

    Attributes:
        status: One of ``'too_large'``, ``'unsupported'``, ``'failed'``.
        original: The underlying exception (may be ``None``).
    """

    def __init__(
        self, status: str, message: str, original: Optional[Exception] = None
    ) -> None:
        self.status = status
        self.original = original
        super().__init__(message)


def _extract_pdf(path: Path) -> str:
    pages: List[str] = []
    with fitz.open(str(path)) as doc:
        for page in doc:
            pages.append(page.get_text("text").replace("\n", " ").strip())
    return "\n".join(pages) + ("\n" if pages else "")


def _extract_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return path.read_text(encoding="latin-1")


def extract_file_content(file_path: str) -> str:
    """Extract the text content of the file at *file_path*.

    Raises:
        FileNotFoundError: If the file does not exist.
        FileExtractionError: If the file is too large, of an unsupported
            type, or cannot be parsed.
    """
    path = Path(file_path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {file_path}")

    size = path.stat().st_size
    if size > MAX_FILE_SIZE:
        raise FileExtractionError("too_large", "File size exceeds 10MB limit")

    mime_type = mimetypes.guess_type(path.name)[0] or ""
    suffix = path.suffix.lower()

    if mime_type == "application/pdf" or suffix == ".pdf":
        try:
            text = _extract_pdf(path)
        except Exception as exc:
            logger.error("Error extracting PDF text from %s: %s", path, exc)
            raise FileExtractionError(
                "failed",
                "Failed to extract text from PDF. Please try again or use a different file.",
                exc,
            ) from exc
    elif suffix in _TEXT_SUFFIXES or mime_type.startswith("text/"):
        text = _extract_text(path)
    else:
        raise FileExtractionError(
            "unsupported", "Unsupported file type. Please use PDF or text files."
        )

    logger.info("Extracted %d characters from %s", len(text), path.name)
    return text
