from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List

from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .chunking import normalize_text
from .errors import InvalidArgumentError, MissingInputError

logger = logging.getLogger(__name__)

CORPUS_SUFFIXES = (".txt", ".md")
RESUME_SUFFIXES = (".pdf", ".docx", ".txt")
MAX_RESUME_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class Document:
    filename: str
    category: str
    content: str
    size_bytes: int


def load_corpus(directory: Path) -> List[Document]:
    """
    Read every .txt/.md file of the knowledge base, sorted by filename.
    The category is the filename without its extension.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise MissingInputError(
            f"Knowledge base directory not found: {directory}", details={"corpus_dir": str(directory)}
        )

    docs: List[Document] = []
    for path in sorted(directory.iterdir(), key=lambda p: p.name):
        if not path.is_file() or path.suffix.lower() not in CORPUS_SUFFIXES:
            continue
        size = path.stat().st_size
        docs.append(
            Document(
                filename=path.name,
                category=path.stem,
                content=path.read_text(encoding="utf-8"),
                size_bytes=size,
            )
        )
        logger.info("Loaded %s (%.2f KB)", path.name, size / 1024)
    return docs


def _read_pdf(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    pages: List[str] = []
    for page in reader.pages:
        t = page.extract_text() or ""
        if t.strip():
            pages.append(t.strip())
    return "\n\n".join(pages)


def _read_docx(data: bytes) -> str:
    doc = DocxDocument(io.BytesIO(data))
    return "\n".join(p.text.strip() for p in doc.paragraphs if p.text and p.text.strip())


def extract_resume_text(filename: str, data: bytes) -> str:
    """Uploaded resume (PDF/DOCX/TXT) -> normalized plain text."""
    suffix = Path(filename or "").suffix.lower()
    if suffix not in RESUME_SUFFIXES:
        raise InvalidArgumentError(
            f"Unsupported resume file type: {suffix or '(none)'}",
            details={"allowed": list(RESUME_SUFFIXES)},
        )
    if len(data) > MAX_RESUME_BYTES:
        raise InvalidArgumentError(
            "Resume file is too large", details={"limit_bytes": MAX_RESUME_BYTES, "size": len(data)}
        )

    try:
        if suffix == ".pdf":
            text = _read_pdf(data)
        elif suffix == ".docx":
            text = _read_docx(data)
        else:
            text = data.decode("utf-8", errors="ignore")
    except (PdfReadError, PackageNotFoundError, zipfile.BadZipFile, ValueError, KeyError, OSError) as e:
        raise InvalidArgumentError(
            f"Unable to extract text from {filename}", details={"error": str(e)}
        ) from e

    logger.info("Extracted %d characters from %s", len(text), filename)
    return normalize_text(text)
