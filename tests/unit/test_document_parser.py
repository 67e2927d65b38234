"""Unit tests for the document parser."""

from __future__ import annotations

import io
import json

import docx
import fitz
import pytest

from chunkwise.services.parsing.document_parser import (
    CSV,
    MARKDOWN,
    TEXT,
    DocumentParser,
    normalize_file_type,
)
from chunkwise.utils.errors import DocumentParseError


@pytest.fixture()
def parser() -> DocumentParser:
    return DocumentParser()


class TestNormalizeFileType:
    @pytest.mark.parametrize(
        ("file_type", "expected"),
        [
            ("text/plain", TEXT),
            ("text/plain; charset=utf-8", TEXT),
            (".MD", MARKDOWN),
            ("txt", TEXT),
            ("csv", CSV),
        ],
    )
    def test_aliases(self, file_type: str, expected: str) -> None:
        assert normalize_file_type(file_type) == expected

    def test_unsupported(self) -> None:
        with pytest.raises(DocumentParseError):
            normalize_file_type("image/png")


class TestTextFormats:
    @pytest.mark.asyncio
    async def test_plain_text_strips_bom(self, parser: DocumentParser) -> None:
        parsed = await parser.parse(b"\xef\xbb\xbfHello there.\n\n\n\nBye.", "text/plain")

        assert parsed.text == "Hello there.\n\nBye."
        assert parsed.metadata["file_type"] == TEXT

    @pytest.mark.asyncio
    async def test_csv_rows_become_labelled_blocks(self, parser: DocumentParser) -> None:
        data = b"question,answer\nCan I return it?,Within 30 days.\n,\n"
        parsed = await parser.parse(data, "text/csv")

        assert parsed.text == "question: Can I return it?\nanswer: Within 30 days."
        assert parsed.metadata["row_count"] == 1
        assert parsed.metadata["columns"] == ["question", "answer"]

    @pytest.mark.asyncio
    async def test_json_is_flattened(self, parser: DocumentParser) -> None:
        payload = {"faq": {"items": [{"q": "Hours?", "open": True}]}, "empty": None, "blank": ""}
        parsed = await parser.parse(json.dumps(payload).encode(), "application/json")

        assert parsed.text == "faq.items[0].q: Hours?\nfaq.items[0].open: true"
        assert parsed.metadata["structure"] == "dict"

    @pytest.mark.asyncio
    async def test_invalid_json(self, parser: DocumentParser) -> None:
        with pytest.raises(DocumentParseError, match="Invalid JSON"):
            await parser.parse(b"{not json", "json")

    @pytest.mark.asyncio
    async def test_html_drops_scripts_and_styles(self, parser: DocumentParser) -> None:
        html = (
            b"<html><head><style>p {color: red}</style><script>var x = 1;</script></head>"
            b"<body><h1>Returns</h1><p>Items   may be returned.</p></body></html>"
        )
        parsed = await parser.parse(html, "text/html")

        assert "Returns" in parsed.text
        assert "Items may be returned." in parsed.text
        assert "var x" not in parsed.text
        assert "color" not in parsed.text


class TestBinaryFormats:
    @pytest.mark.asyncio
    async def test_docx_paragraphs(self, parser: DocumentParser) -> None:
        document = docx.Document()
        document.add_paragraph("Warranty terms")
        document.add_paragraph("")
        document.add_paragraph("Two years from purchase.")
        buffer = io.BytesIO()
        document.save(buffer)

        parsed = await parser.parse(buffer.getvalue(), "docx")

        assert parsed.text == "Warranty terms\n\nTwo years from purchase."
        assert parsed.metadata["paragraph_count"] == 2

    @pytest.mark.asyncio
    async def test_pdf_pages(self, parser: DocumentParser) -> None:
        pdf = fitz.open()
        for line in ("First page text", "Second page text"):
            page = pdf.new_page()
            page.insert_text((72, 72), line)
        data = pdf.tobytes()
        pdf.close()

        parsed = await parser.parse(data, "application/pdf")

        assert "First page text" in parsed.text
        assert "Second page text" in parsed.text
        assert parsed.metadata["page_count"] == 2

    @pytest.mark.asyncio
    async def test_corrupt_pdf(self, parser: DocumentParser) -> None:
        with pytest.raises(DocumentParseError, match="Failed to parse application/pdf"):
            await parser.parse(b"definitely not a pdf", "pdf")


class TestFailures:
    @pytest.mark.asyncio
    async def test_no_text_extracted(self, parser: DocumentParser) -> None:
        with pytest.raises(DocumentParseError, match="No text"):
            await parser.parse(b"  \n\n  ", "text/plain")

    @pytest.mark.asyncio
    async def test_unsupported_type_is_not_recoverable(self, parser: DocumentParser) -> None:
        with pytest.raises(DocumentParseError) as exc_info:
            await parser.parse(b"\x89PNG", "image/png")
        assert exc_info.value.recoverable is False
