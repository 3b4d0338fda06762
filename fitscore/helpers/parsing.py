import io
import logging
import re
import zipfile

from docx import Document
from pdfminer.high_level import extract_text as pdf_extract
from pdfminer.pdfparser import PDFSyntaxError

from fitscore.utils.exceptions import ExtractionError, ExtractionErrorKind

logging.getLogger("pdfminer").setLevel(logging.ERROR)

PDF_SIGNATURE = b"%PDF"
ZIP_SIGNATURE = b"PK\x03\x04"
TEXT_SUFFIXES = (".txt", ".md", ".text")

_HSPACE = re.compile(r"[ \t\f\v\r\u00a0]+")
_LINEBREAKS = re.compile(r" ?\n[\s]*")


def clean_text(x: str) -> str:
    """Collapse whitespace runs to single spaces / single newlines and trim."""
    x = _HSPACE.sub(" ", x)
    x = _LINEBREAKS.sub("\n", x)
    return x.strip()


def read_txt(data: bytes) -> str:
    return data.decode("utf-8", errors="ignore")


def read_docx(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    return "\n".join([p.text for p in doc.paragraphs])


def read_pdf(data: bytes) -> str:
    try:
        return pdf_extract(io.BytesIO(data))
    except PDFSyntaxError:
        raise
    except Exception:
        # fallback to unstructured
        from unstructured.partition.auto import partition
        elems = partition(file=io.BytesIO(data), content_type="application/pdf")
        return "\n".join([e.text for e in elems if hasattr(e, "text") and e.text])


def _looks_like_text(data: bytes) -> bool:
    if b"\x00" in data[:4096]:
        return False
    try:
        data.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def document_to_text(data: bytes, locator: str = "") -> str:
    """
    Convert raw document bytes into text based on their signature.

    Raises:
        ExtractionError(InvalidFormat) when the bytes are not a readable PDF,
        DOCX or plain-text document.
    """
    name = locator.lower().split("?", 1)[0]

    try:
        if data.startswith(PDF_SIGNATURE):
            return read_pdf(data)
        if data.startswith(ZIP_SIGNATURE) and (name.endswith(".docx") or _is_docx_archive(data)):
            return read_docx(data)
        if name.endswith(TEXT_SUFFIXES) or _looks_like_text(data):
            return read_txt(data)
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(
            f"Invalid or corrupted document: {e}",
            kind=ExtractionErrorKind.INVALID_FORMAT,
            locator=locator,
            cause=e,
        )

    raise ExtractionError(
        "Unsupported document format (expected PDF, DOCX or plain text)",
        kind=ExtractionErrorKind.INVALID_FORMAT,
        locator=locator,
    )


def _is_docx_archive(data: bytes) -> bool:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            return "word/document.xml" in zf.namelist()
    except zipfile.BadZipFile:
        return False
