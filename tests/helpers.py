"""Fakes and sample-document builders shared by the tests."""

import io
import struct
import zipfile
from typing import Any

import fitz
import openpyxl
from docx import Document
from PIL import Image
from pydantic import BaseModel

from docingest.inference.client import ImageContent
from docingest.loaders.mime import ODP, ODS, ODT


class FakeInferenceClient:
    """Inference client returning queued replies and recording calls.

    Each queued item is either a mapping validated against the requested
    schema or an exception instance that is raised for that call.
    """

    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    async def generate_object(
        self,
        *,
        system: str,
        content: str | ImageContent,
        schema: type[BaseModel],
        temperature: float = 0.1,
    ) -> BaseModel:
        self.calls.append(
            {
                "system": system,
                "content": content,
                "schema": schema,
                "temperature": temperature,
            }
        )
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return schema.model_validate(reply)


class FakeOCR:
    """OCR backend returning a fixed string."""

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.calls: list[tuple[bytes, str]] = []

    async def ocr(self, content: bytes, mime_type: str) -> str:
        self.calls.append((content, mime_type))
        return self.text


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


INVOICE_TEXT = (
    "GOOGLE*WORKSPACE Invoice INV-2024-001 Issued 01.03.2024 Due 31.03.2024 "
    "Bill To: Acme d.o.o. Ilica 1 Zagreb. Workspace Business Standard 10 x 10.00 "
    "Subtotal 100.00 VAT 20% 20.00 Total 120.00 USD"
)


def make_pdf(*pages: str) -> bytes:
    """Build a PDF with one text page per argument (empty string = blank page)."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_docx(*paragraphs: str) -> bytes:
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


def make_xlsx(rows: list[list[object]]) -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Invoices"
    for row in rows:
        sheet.append(row)
    buf = io.BytesIO()
    workbook.save(buf)
    return buf.getvalue()


def make_pptx(*slides: str) -> bytes:
    """Build a minimal PPTX archive carrying one text run per slide."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        for index, text in enumerate(slides, 1):
            archive.writestr(
                f"ppt/slides/slide{index}.xml",
                '<p:sld xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main" '
                'xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main">'
                f"<p:cSld><p:spTree><p:sp><p:txBody><a:p><a:r><a:t>{text}</a:t></a:r></a:p>"
                "</p:txBody></p:sp></p:spTree></p:cSld></p:sld>",
            )
    return buf.getvalue()


_ODF_NAMESPACES = (
    'xmlns:office="urn:oasis:names:tc:opendocument:xmlns:office:1.0" '
    'xmlns:text="urn:oasis:names:tc:opendocument:xmlns:text:1.0" '
    'xmlns:table="urn:oasis:names:tc:opendocument:xmlns:table:1.0" '
    'xmlns:draw="urn:oasis:names:tc:opendocument:xmlns:drawing:1.0"'
)


def _odf_archive(mime_type: str, body: str) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        archive.writestr("mimetype", mime_type)
        archive.writestr(
            "content.xml",
            f"<office:document-content {_ODF_NAMESPACES}>"
            f"<office:body>{body}</office:body></office:document-content>",
        )
    return buf.getvalue()


def make_odt(*paragraphs: str) -> bytes:
    """Build a minimal ODT archive with the given paragraphs."""
    body = "".join(f"<text:p>{p}</text:p>" for p in paragraphs)
    return _odf_archive(ODT, f"<office:text>{body}</office:text>")


def make_ods(rows: list[list[str]]) -> bytes:
    """Build a minimal ODS archive with one table of text cells."""
    body = "".join(
        "<table:table-row>"
        + "".join(
            f"<table:table-cell><text:p>{value}</text:p></table:table-cell>"
            for value in row
        )
        + "</table:table-row>"
        for row in rows
    )
    return _odf_archive(
        ODS,
        f'<office:spreadsheet><table:table table:name="Invoices">{body}'
        "</table:table></office:spreadsheet>",
    )


def make_odp(*slides: str) -> bytes:
    """Build a minimal ODP archive with one text frame per slide."""
    body = "".join(
        f'<draw:page draw:name="p{index}"><draw:frame><draw:text-box>'
        f"<text:p>{text}</text:p></draw:text-box></draw:frame></draw:page>"
        for index, text in enumerate(slides, 1)
    )
    return _odf_archive(ODP, f"<office:presentation>{body}</office:presentation>")


def _biff_record(code: int, data: bytes = b"") -> bytes:
    return struct.pack("<HH", code, len(data)) + data


def _biff_bof(stream_type: int) -> bytes:
    bof = struct.pack("<HHHHII", 0x0600, stream_type, 0x0DBB, 0x07CC, 0, 6)
    return _biff_record(0x0809, bof)


def make_xls(sheet_name: str, rows: list[list[str]]) -> bytes:
    """Build a bare BIFF8 workbook stream with one sheet of text cells.

    xlrd reads BIFF streams that are not wrapped in an OLE2 container,
    so no compound-document header is written.
    """
    cells = b"".join(
        _biff_record(
            0x0204,
            struct.pack("<HHHHB", row_idx, col_idx, 0, len(value), 0)
            + value.encode("latin-1"),
        )
        for row_idx, row in enumerate(rows)
        for col_idx, value in enumerate(row)
    )
    sheet = _biff_bof(0x0010) + cells + _biff_record(0x000A)

    name = sheet_name.encode("latin-1")
    boundsheet_size = 4 + 6 + 2 + len(name)
    sheet_offset = len(_biff_bof(0x0005)) + boundsheet_size + len(_biff_record(0x000A))
    boundsheet = _biff_record(
        0x0085, struct.pack("<iBBBB", sheet_offset, 0, 0, len(name), 0) + name
    )
    workbook_globals = _biff_bof(0x0005) + boundsheet + _biff_record(0x000A)
    return workbook_globals + sheet


def make_png() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (120, 80), "white").save(buf, format="PNG")
    return buf.getvalue()
