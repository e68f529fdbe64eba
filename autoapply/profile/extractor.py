"""Resume text extraction. PDFs go through pymupdf (optional dependency)."""

import re
from pathlib import Path

_PLAIN_TEXT_SUFFIXES = {".txt", ".md"}


def extract_resume_text(path: str | Path) -> str:
    """Return the resume's plain text, reading PDFs or plain text files.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file type is not supported.
        ImportError: If the file is a PDF and pymupdf is not installed.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Resume file not found: {path}"
        raise FileNotFoundError(msg)

    suffix = path.suffix.lower()
    if suffix == ".pdf":
        return _normalize(_pdf_text(path))
    if suffix in _PLAIN_TEXT_SUFFIXES:
        return _normalize(path.read_text())
    msg = f"Unsupported resume format '{suffix}', expected .pdf, .txt or .md"
    raise ValueError(msg)


def _pdf_text(path: Path) -> str:
    try:
        import pymupdf
    except ImportError:
        msg = (
            "pymupdf is required for PDF extraction. "
            "Install with: pip install 'autoapply[profile]'"
        )
        raise ImportError(msg) from None

    with pymupdf.open(str(path)) as doc:
        return "\n".join(page.get_text() for page in doc)


def _normalize(text: str) -> str:
    """Collapse runs of blank lines and trailing spaces."""
    lines = [line.rstrip() for line in text.splitlines()]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()
