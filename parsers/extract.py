import io
import logging
from pathlib import Path
from typing import Optional

import docx
import fitz  # PyMuPDF
from PyPDF2 import PdfReader

logger = logging.getLogger(__name__)

PDF = "application/pdf"
DOC = "application/msword"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TXT = "text/plain"

SUPPORTED_TYPES = {PDF, DOC, DOCX, TXT}
EXTENSION_TYPES = {".pdf": PDF, ".doc": DOC, ".docx": DOCX, ".txt": TXT}


def guess_mime_type(file_name: str, declared: Optional[str] = None) -> Optional[str]:
    """Prefer the declared media type; fall back to the file extension."""
    if declared in SUPPORTED_TYPES:
        return declared
    return EXTENSION_TYPES.get(Path(file_name).suffix.lower(), declared)


class ResumeTextExtractor:
    """Pulls plain text out of uploaded resume documents held in memory."""

    def read_pdf(self, content: bytes) -> str:
        """Extract text from PDF using PyMuPDF primarily, fallback to PyPDF2."""
        text = ""

        try:
            with fitz.open(stream=content, filetype="pdf") as doc:
                text = "\n".join(page.get_text("text") or "" for page in doc)
            if text.strip():
                logger.info("Extracted %d characters via PyMuPDF", len(text))
                return text
        except Exception as e:
            logger.warning("PyMuPDF extraction failed: %s", e)

        try:
            reader = PdfReader(io.BytesIO(content))
            text = "\n".join(page.extract_text() or "" for page in reader.pages)
            if text.strip():
                logger.info("Extracted %d characters via PyPDF2 fallback", len(text))
                return text
        except Exception as e:
            logger.error("PyPDF2 extraction failed: %s", e)

        logger.warning("No text extracted from PDF")
        return text

    def read_docx(self, content: bytes) -> str:
        """Paragraphs first, then table cells row by row."""
        doc = docx.Document(io.BytesIO(content))
        lines = [para.text for para in doc.paragraphs]
        for table in doc.tables:
            for row in table.rows:
                lines.append(" ".join(cell.text for cell in row.cells))
        return "\n".join(lines)

    def read_txt(self, content: bytes) -> str:
        for encoding in ("utf-8", "latin-1", "cp1252"):
            try:
                return content.decode(encoding)
            except UnicodeDecodeError:
                continue
        raise ValueError("Unable to decode file with supported encodings")

    def extract_text(self, content: bytes, mime_type: Optional[str]) -> str:
        """Best-effort text for ``mime_type``; unreadable documents yield an empty string."""
        if mime_type == DOC:
            # python-docx only reads OOXML; legacy Word files are analyzed inline.
            logger.info("No text extraction for legacy Word documents")
            return ""
        try:
            if mime_type == PDF:
                return self.read_pdf(content).strip()
            if mime_type == DOCX:
                return self.read_docx(content).strip()
            if mime_type == TXT:
                return self.read_txt(content).strip()
        except Exception as e:
            logger.warning("Text extraction failed for %s: %s", mime_type, e)
            return ""
        logger.warning("Unsupported media type for text extraction: %s", mime_type)
        return ""
