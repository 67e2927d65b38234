"""Content parser: raw document bytes → plain text.

Dispatches on the declared file type (MIME type or bare extension) to one
format reader per type:

- **PDF**       -- PyMuPDF (``fitz``), page by page
- **DOCX**      -- python-docx paragraphs
- **EPUB**      -- ebooklib document items, HTML stripped by BeautifulSoup
- **HTML**      -- BeautifulSoup text extraction
- **Text / Markdown** -- UTF-8 decode, BOM stripped
- **CSV**       -- one ``header: value`` line per cell, rows separated by a blank line
- **JSON**      -- flattened ``path.to[0].key: value`` lines, BOM stripped

Readers are synchronous and CPU-bound, so :meth:`DocumentParser.parse`
runs them in a worker thread.
"""

from __future__ import annotations

import asyncio
import csv
import io
import json
import os
import re
import tempfile
from typing import Any, Callable

import docx
import ebooklib
import fitz  # PyMuPDF
import structlog
from bs4 import BeautifulSoup
from ebooklib import epub

from chunkwise.models.ingestion import ParsedDocument
from chunkwise.utils.errors import DocumentParseError

logger = structlog.get_logger(logger_name=__name__)

_MULTI_NEWLINE = re.compile(r"\n{3,}")
_MULTI_SPACE = re.compile(r"[ \t]{2,}")

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
EPUB = "application/epub+zip"
HTML = "text/html"
TEXT = "text/plain"
MARKDOWN = "text/markdown"
CSV = "text/csv"
JSON = "application/json"

# Bare extensions accepted as shorthand for their MIME type.
_ALIASES: dict[str, str] = {
    "pdf": PDF,
    "docx": DOCX,
    "epub": EPUB,
    "html": HTML,
    "htm": HTML,
    "txt": TEXT,
    "text": TEXT,
    "md": MARKDOWN,
    "markdown": MARKDOWN,
    "csv": CSV,
    "json": JSON,
}

SUPPORTED_FILE_TYPES = frozenset(_ALIASES.values())


def normalize_file_type(file_type: str) -> str:
    """Map a MIME type or extension to a canonical MIME type.

    Raises
    ------
    DocumentParseError
        If the type is not supported.
    """
    key = file_type.strip().lower().split(";")[0].strip()
    key = _ALIASES.get(key.lstrip("."), key)
    if key not in SUPPORTED_FILE_TYPES:
        raise DocumentParseError(message=f"Unsupported file type: {file_type}")
    return key


class DocumentParser:
    """Extracts plain text from uploaded documents."""

    def __init__(self) -> None:
        self._readers: dict[str, Callable[[bytes], tuple[str, dict[str, Any]]]] = {
            PDF: self._read_pdf,
            DOCX: self._read_docx,
            EPUB: self._read_epub,
            HTML: self._read_html,
            TEXT: self._read_text,
            MARKDOWN: self._read_text,
            CSV: self._read_csv,
            JSON: self._read_json,
        }

    async def parse(self, data: bytes, file_type: str) -> ParsedDocument:
        """Parse *data* according to *file_type*.

        Raises
        ------
        DocumentParseError
            If the type is unsupported, the bytes are corrupt, or no text
            could be extracted.
        """
        mime = normalize_file_type(file_type)
        reader = self._readers[mime]
        try:
            text, metadata = await asyncio.to_thread(reader, data)
        except DocumentParseError:
            raise
        except Exception as exc:
            raise DocumentParseError(message=f"Failed to parse {mime} document: {exc}") from exc

        text = _MULTI_NEWLINE.sub("\n\n", text).strip()
        if not text:
            raise DocumentParseError(message="No text could be extracted from the document")

        logger.info("document_parsed", file_type=mime, text_length=len(text))
        return ParsedDocument(text=text, metadata={"file_type": mime, **metadata})

    # ------------------------------------------------------------------
    # Format readers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_pdf(data: bytes) -> tuple[str, dict[str, Any]]:
        doc = fitz.open(stream=data, filetype="pdf")
        try:
            pages = [doc[i].get_text("text").strip() for i in range(len(doc))]
            page_count = len(doc)
        finally:
            doc.close()
        return "\n\n".join(p for p in pages if p), {"page_count": page_count}

    @staticmethod
    def _read_docx(data: bytes) -> tuple[str, dict[str, Any]]:
        document = docx.Document(io.BytesIO(data))
        paragraphs = [p.text.strip() for p in document.paragraphs]
        paragraphs = [p for p in paragraphs if p]
        return "\n\n".join(paragraphs), {"paragraph_count": len(paragraphs)}

    @staticmethod
    def _read_epub(data: bytes) -> tuple[str, dict[str, Any]]:
        # ebooklib reads from a path.
        fd, tmp_path = tempfile.mkstemp(suffix=".epub")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            book = epub.read_epub(tmp_path, options={"ignore_ncx": True})
        finally:
            os.unlink(tmp_path)

        chapters: list[str] = []
        for item in book.get_items_of_type(ebooklib.ITEM_DOCUMENT):
            html_content = item.get_content().decode("utf-8", errors="replace")
            text = _html_to_text(html_content)
            if text:
                chapters.append(text)
        return "\n\n".join(chapters), {"chapter_count": len(chapters)}

    @staticmethod
    def _read_html(data: bytes) -> tuple[str, dict[str, Any]]:
        return _html_to_text(_decode(data)), {}

    @staticmethod
    def _read_text(data: bytes) -> tuple[str, dict[str, Any]]:
        return _decode(data), {}

    @staticmethod
    def _read_csv(data: bytes) -> tuple[str, dict[str, Any]]:
        reader = csv.DictReader(io.StringIO(_decode(data)))
        rows: list[str] = []
        for row in reader:
            lines = [
                f"{header}: {value.strip()}"
                for header, value in row.items()
                if header and isinstance(value, str) and value.strip()
            ]
            if lines:
                rows.append("\n".join(lines))
        return "\n\n".join(rows), {"row_count": len(rows), "columns": reader.fieldnames or []}

    @staticmethod
    def _read_json(data: bytes) -> tuple[str, dict[str, Any]]:
        try:
            parsed = json.loads(_decode(data))
        except json.JSONDecodeError as exc:
            raise DocumentParseError(message=f"Invalid JSON: {exc}") from exc
        return "\n".join(_flatten_json(parsed)), {"structure": type(parsed).__name__}


def _decode(data: bytes) -> str:
    # utf-8-sig strips a leading BOM.
    return data.decode("utf-8-sig", errors="replace")


def _html_to_text(html_content: str) -> str:
    soup = BeautifulSoup(html_content, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    text = _MULTI_SPACE.sub(" ", text)
    return _MULTI_NEWLINE.sub("\n\n", text).strip()


def _flatten_json(value: Any, prefix: str = "") -> list[str]:
    """Render nested JSON as ``path: value`` lines."""
    if value is None:
        return []
    if isinstance(value, dict):
        lines: list[str] = []
        for key, item in value.items():
            lines.extend(_flatten_json(item, f"{prefix}.{key}" if prefix else str(key)))
        return lines
    if isinstance(value, list):
        lines = []
        for i, item in enumerate(value):
            lines.extend(_flatten_json(item, f"{prefix}[{i}]"))
        return lines
    if isinstance(value, bool):
        rendered = "true" if value else "false"
    else:
        rendered = str(value)
    if rendered == "":
        return []
    return [f"{prefix}: {rendered}" if prefix else rendered]
