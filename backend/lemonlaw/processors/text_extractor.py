"""
Lemon Law Fee Suite
Text Extraction for Uploaded Billing and Cost Records
"""
import io
import re
from typing import List

from docx import Document
from pypdf import PdfReader


SUPPORTED_SUFFIXES = (".pdf", ".docx", ".txt")


class UnsupportedDocumentError(ValueError):
    """Uploaded file type has no text extractor"""


def pdf_to_text(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    parts: List[str] = []
    for page in reader.pages:
        parts.append(page.extract_text() or "")
    return "\n".join(parts)


def docx_to_text(data: bytes) -> str:
    doc = Document(io.BytesIO(data))
    parts: List[str] = []
    for p in doc.paragraphs:
        if p.text:
            parts.append(p.text)
    # billing statements are usually tables
    for t in doc.tables:
        for row in t.rows:
            row_text = "\t".join(cell.text.strip() for cell in row.cells)
            if row_text.strip():
                parts.append(row_text)
    return "\n".join(parts)


def normalize(text: str) -> str:
    text = re.sub(r"Page\s+\d+\s+of\s+\d+", "", text, flags=re.I)
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def extract_text(filename: str, data: bytes) -> str:
    """Extract plain text from a PDF, DOCX or TXT upload"""
    suffix = "." + filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

    if suffix == ".pdf":
        text = pdf_to_text(data)
    elif suffix == ".docx":
        text = docx_to_text(data)
    elif suffix == ".txt":
        text = data.decode("utf-8", errors="ignore")
    else:
        raise UnsupportedDocumentError(
            f"Unsupported file type '{suffix or filename}'. Supported: {', '.join(SUPPORTED_SUFFIXES)}"
        )
    return normalize(text)
