"""Document loading service for PDF and plain-text extraction."""
import logging
import os
import re
from typing import List, Union

import fitz  # PyMuPDF

from models.document import ExtractedText
from services.errors import ExtractionError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".txt")

_EXTENSION_RE = re.compile(r"\.(pdf|txt)$", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def document_name_from_filename(filename: str) -> str:
    """Display name shown in the knowledge base: the filename minus its extension."""
    return _EXTENSION_RE.sub("", filename)


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def is_supported(filename: str) -> bool:
    return filename.lower().endswith(SUPPORTED_EXTENSIONS)


class DocumentLoader:
    """Extracts plain text from PDF and text sources."""

    def extract(self, source: Union[bytes, str], filename: str) -> ExtractedText:
        """
        Extract text from an uploaded source.

        A `str` source is taken verbatim. A `bytes` source is parsed as PDF when
        the filename ends in .pdf (or the bytes carry the PDF signature) and
        decoded as UTF-8 otherwise.

        Args:
            source: Raw file bytes or already-decoded text
            filename: Original filename

        Returns:
            ExtractedText with the raw (not yet normalized) text

        Raises:
            ExtractionError: If the source cannot be parsed
        """
        if isinstance(source, str):
            return ExtractedText(
                text=source,
                file_size=len(source.encode("utf-8")),
                source_type="text",
            )

        if filename.lower().endswith(".pdf") or source[:5] == b"%PDF-":
            return self._extract_pdf(source, filename)

        if filename.lower().endswith(".txt"):
            try:
                text = source.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ExtractionError(f'"{filename}" is not valid UTF-8 text') from e
            return ExtractedText(text=text, file_size=len(source), source_type="text")

        raise ExtractionError(f'Unsupported file type for "{filename}". Only PDF and plain text are supported.')

    def _extract_pdf(self, data: bytes, filename: str) -> ExtractedText:
        """
        Extract text page-by-page from PDF bytes.

        Args:
            data: PDF file bytes
            filename: Name of the file, for error messages

        Returns:
            ExtractedText with page count
        """
        try:
            pdf_document = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            logger.error(f"Failed to open PDF {filename}: {e}")
            raise ExtractionError(f'"{filename}" could not be read as a PDF') from e

        try:
            page_texts = [page.get_text() for page in pdf_document]
            page_count = pdf_document.page_count
        finally:
            pdf_document.close()

        logger.info(f"Extracted {page_count} pages from {filename}")
        return ExtractedText(
            text="\n".join(page_texts),
            file_size=len(data),
            page_count=page_count,
            source_type="pdf",
        )

    def list_source_files(self, target: str) -> List[str]:
        """
        Resolve a file or directory into the supported files it names.

        Args:
            target: Path to a single file or to a directory

        Returns:
            Sorted list of file paths (empty if nothing usable was found)
        """
        if os.path.isdir(target):
            files = [
                os.path.join(target, f)
                for f in sorted(os.listdir(target))
                if is_supported(f) and os.path.isfile(os.path.join(target, f))
            ]
            logger.info(f"Found {len(files)} supported files in {target}")
            return files

        if os.path.isfile(target) and is_supported(target):
            return [target]

        logger.error(f"Not a supported file or directory: {target}")
        return []
