"""Format-specific text extractors.

Each handler takes the raw document bytes plus the normalized MIME type
and returns an ``ExtractedText``. Handlers are synchronous and are run
in worker threads by the document loader.
"""

import csv
import io
import re
import shutil
import subprocess
import tempfile
import xml.etree.ElementTree as ET
import zipfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import fitz
import openpyxl
import xlrd
from docx import Document

from docingest.utils.logger import get_logger

from .mime import DOC, DOCX, ODP, ODS, ODT, PPTX, XLS, XLSX

logger = get_logger(__name__)


@dataclass
class ExtractedText:
    """Raw text produced by a format handler, before normalization."""

    text: str | None
    page_count: int | None = None


FormatHandler = Callable[[bytes, str], ExtractedText]

_ODF_TEXT_NS = "urn:oasis:names:tc:opendocument:xmlns:text:1.0"
_ODF_BLOCKS = {f"{{{_ODF_TEXT_NS}}}p", f"{{{_ODF_TEXT_NS}}}h"}
_DRAWINGML_TEXT = "{http://schemas.openxmlformats.org/drawingml/2006/main}t"
_SLIDE_PATH = re.compile(r"^ppt/slides/slide(\d+)\.xml$")


def extract_pdf_text(content: bytes, mime_type: str = "application/pdf") -> ExtractedText:
    """Extract the text layer of every page with PyMuPDF.

    Raises whatever PyMuPDF raises for unreadable files; the loader
    decides whether OCR can recover the document.
    """
    with fitz.open(stream=content, filetype="pdf") as doc:
        page_count = doc.page_count
        pages = [page.get_text() for page in doc]

    text = "\n".join(pages).replace("\x00", "")
    logger.debug("PDF text layer: %d pages, %d characters", page_count, len(text))
    return ExtractedText(text=text, page_count=page_count)


def extract_plain_text(content: bytes, mime_type: str = "text/plain") -> ExtractedText:
    return ExtractedText(text=content.decode("utf-8-sig", errors="replace"))


def extract_csv_text(
    content: bytes,
    mime_type: str = "text/csv",
    separator: str = " | ",
) -> ExtractedText:
    """Render CSV rows as separator-joined lines.

    Quoted fields keep embedded delimiters. Blank rows are skipped and
    every field is trimmed.
    """
    decoded = content.decode("utf-8-sig", errors="replace")
    lines = []
    for row in csv.reader(io.StringIO(decoded)):
        fields = [value.strip() for value in row]
        if any(fields):
            lines.append(separator.join(fields))
    return ExtractedText(text="\n".join(lines))


# --- RTF -------------------------------------------------------------------

_RTF_SKIPPED_GROUP = re.compile(
    r"\{\\(?:\*|fonttbl|colortbl|stylesheet|info|object|pict)", re.IGNORECASE
)
_RTF_PARAGRAPH = re.compile(r"\\(?:par|line)\b ?")
_RTF_TAB = re.compile(r"\\tab\b ?")
_RTF_UNICODE = re.compile(r"\\u-?\d+\??")
_RTF_HEX = re.compile(r"\\'[0-9a-f]{2}", re.IGNORECASE)
_RTF_SYMBOLS = {"~": " ", "-": "", "_": "-"}
_RTF_SYMBOL = re.compile(r"(?<!\\)\\([~_-])")
_RTF_CONTROL_WORD = re.compile(r"\\[a-z]+-?\d* ?", re.IGNORECASE)
_RTF_BRACES = re.compile(r"(?<!\\)[{}]")
_RTF_ESCAPED = re.compile(r"\\([{}\\])")
_BLANK_LINES = re.compile(r"\r?\n\s*\r?\n")
_INLINE_SPACE = re.compile(r"[ \t]{2,}")


def _strip_rtf_groups(rtf: str) -> str:
    """Remove metadata and embedded-object groups, honouring nested braces."""
    parts = []
    pos = 0
    while match := _RTF_SKIPPED_GROUP.search(rtf, pos):
        parts.append(rtf[pos : match.start()])
        depth = 0
        end = match.start()
        while end < len(rtf):
            char = rtf[end]
            if char == "\\":
                end += 2
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    break
            end += 1
        pos = end + 1
    parts.append(rtf[pos:])
    return "".join(parts)


def rtf_to_text(rtf: str) -> str:
    """Convert RTF markup to plain text.

    Paragraph and line breaks become newlines and ``\\tab`` a tab.
    Non-breaking spaces and hyphens map to their plain forms and optional
    hyphens vanish. Remaining control words, unicode and hex escapes and
    group braces are dropped.
    """
    text = _strip_rtf_groups(rtf)
    text = _RTF_PARAGRAPH.sub("\n", text)
    text = _RTF_TAB.sub("\t", text)
    text = _RTF_SYMBOL.sub(lambda m: _RTF_SYMBOLS[m.group(1)], text)
    text = _RTF_UNICODE.sub("", text)
    text = _RTF_HEX.sub("", text)
    text = _RTF_CONTROL_WORD.sub("", text)
    text = _RTF_BRACES.sub("", text)
    text = _RTF_ESCAPED.sub(r"\1", text)
    text = _BLANK_LINES.sub("\n", text)
    text = _INLINE_SPACE.sub(" ", text)
    return "\n".join(line.strip() for line in text.strip().splitlines())


def extract_rtf_text(content: bytes, mime_type: str = "application/rtf") -> ExtractedText:
    return ExtractedText(text=rtf_to_text(content.decode("utf-8", errors="replace")))


# --- Office and OpenDocument -----------------------------------------------


def _cell_to_str(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _docx_text(content: bytes) -> str:
    doc = Document(io.BytesIO(content))
    parts = [p.text.strip() for p in doc.paragraphs if p.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            parts.append(" | ".join(cell.text.strip() for cell in row.cells))
    return "\n".join(parts)


def _xlsx_text(content: bytes) -> str:
    workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    parts = []
    try:
        for sheet in workbook.worksheets:
            parts.append(sheet.title)
            for row in sheet.iter_rows(values_only=True):
                values = [_cell_to_str(value) for value in row]
                if any(values):
                    parts.append(" | ".join(values))
    finally:
        workbook.close()
    return "\n".join(parts)


def _xls_text(content: bytes) -> str:
    workbook = xlrd.open_workbook(file_contents=content)
    parts = []
    for sheet in workbook.sheets():
        parts.append(sheet.name)
        for row_idx in range(sheet.nrows):
            values = [_cell_to_str(value) for value in sheet.row_values(row_idx)]
            if any(values):
                parts.append(" | ".join(values))
    return "\n".join(parts)


def _pptx_text(content: bytes) -> str:
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        slides = sorted(
            (int(m.group(1)), name)
            for name in archive.namelist()
            if (m := _SLIDE_PATH.match(name))
        )
        parts = []
        for _, name in slides:
            root = ET.fromstring(archive.read(name))
            runs = [
                node.text.strip()
                for node in root.iter(_DRAWINGML_TEXT)
                if node.text and node.text.strip()
            ]
            parts.append("\n".join(runs))
    return "\n\n".join(part for part in parts if part)


def _odf_text(content: bytes) -> str:
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        root = ET.fromstring(archive.read("content.xml"))
    blocks = []
    for node in root.iter():
        if node.tag in _ODF_BLOCKS:
            block = "".join(node.itertext()).strip()
            if block:
                blocks.append(block)
    return "\n".join(blocks)


def _doc_text(content: bytes, soffice_cmd: str | None = None) -> str:
    """Convert legacy Word files to text with a headless LibreOffice."""
    soffice = soffice_cmd or shutil.which("soffice") or shutil.which("libreoffice")
    if not soffice:
        raise RuntimeError("Legacy .doc extraction requires LibreOffice (soffice)")

    with tempfile.TemporaryDirectory() as tmp_dir:
        source = Path(tmp_dir) / "document.doc"
        source.write_bytes(content)
        subprocess.run(
            [
                soffice,
                "--headless",
                "--convert-to",
                "txt:Text",
                str(source),
                "--outdir",
                tmp_dir,
            ],
            capture_output=True,
            check=True,
            timeout=120,
        )
        return (Path(tmp_dir) / "document.txt").read_text(
            encoding="utf-8", errors="ignore"
        )


class OfficeExtractor:
    """Text extraction for OOXML, legacy Office and OpenDocument files.

    Failures are never fatal: the error is logged and empty text is
    returned so the document can still be reported as unreadable.

    Args:
        soffice_cmd: Path to the LibreOffice binary used for ``.doc``.
            If ``None``, ``soffice`` or ``libreoffice`` is looked up on PATH.
    """

    def __init__(self, soffice_cmd: str | None = None) -> None:
        self.soffice_cmd = soffice_cmd
        self._extractors: dict[str, Callable[[bytes], str]] = {
            DOCX: _docx_text,
            "application/docx": _docx_text,
            XLSX: _xlsx_text,
            XLS: _xls_text,
            PPTX: _pptx_text,
            "application/pptx": _pptx_text,
            ODT: _odf_text,
            ODS: _odf_text,
            ODP: _odf_text,
            DOC: lambda content: _doc_text(content, self.soffice_cmd),
        }

    @property
    def mime_types(self) -> list[str]:
        return list(self._extractors)

    def __call__(self, content: bytes, mime_type: str) -> ExtractedText:
        extractor = self._extractors.get(mime_type)
        if extractor is None:
            logger.error("No office extractor for %s", mime_type)
            return ExtractedText(text="")
        try:
            return ExtractedText(text=extractor(content))
        except Exception as exc:
            logger.error("Office document extraction failed (%s): %s", mime_type, exc)
            return ExtractedText(text="")
