# app/template/pdf.py
import logging
import re
from io import BytesIO

from PyPDF2 import PdfReader

from app.core.errors import BadRequestError

logger = logging.getLogger(__name__)

_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def normalize_text(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _EXCESS_NEWLINES.sub("\n\n", text).strip()


def extract_pdf_text(data: bytes) -> str:
    """Extract and normalize the text of every page of a PDF document."""
    try:
        reader = PdfReader(BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        logger.error("Failed to extract text from PDF: %s", e)
        raise BadRequestError("Invalid or corrupted PDF file") from e

    text = normalize_text("\n".join(pages))
    logger.info("PDF text extracted (pages=%d, length=%d)", len(pages), len(text))
    return text
