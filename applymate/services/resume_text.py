import io
import logging
import re

import pdfplumber

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    text = text.replace("\r", "\n")
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]{2,}", " ", text)
    # fix hyphenated line breaks: "engi-\nneer" -> "engineer"
    text = re.sub(r"(\w)-\n(\w)", r"\1\2", text)
    return text.strip()


def is_pdf_upload(filename: str | None, content_type: str | None) -> bool:
    return bool(
        (filename and filename.lower().endswith(".pdf"))
        or (content_type or "").lower() == "application/pdf"
    )


def looks_like_pdf(content: bytes) -> bool:
    return content.startswith(b"%PDF")


def extract_text_from_pdf_bytes(content: bytes) -> str:
    """Plain text of every page, normalized. Scanned PDFs come back empty."""
    pages: list[str] = []
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        for page in pdf.pages:
            pages.append(page.extract_text() or "")
    text = normalize_text("\n".join(pages))
    logger.debug("Extracted %d chars from %d PDF pages", len(text), len(pages))
    return text
