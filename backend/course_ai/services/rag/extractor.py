"""
PDF Text Extraction

Turns an uploaded handout (raw PDF bytes) into plain text with PyMuPDF.
Pages are read in order; a page that fails to parse is logged and skipped so
one damaged page does not sink the whole handout.
"""

import logging

import fitz  # PyMuPDF

from course_ai.core.errors import ServiceError, processing_error, validation_error

logger = logging.getLogger(__name__)


def extract_text_from_pdf(data: bytes) -> str:
    """
    Extract the text of every page, joined in page order.

    Raises:
        ServiceError(VALIDATION): the buffer is empty
        ServiceError(PROCESSING): unreadable PDF, no pages, or no text at all
    """
    if not data:
        raise validation_error("PDF buffer is empty")

    try:
        document = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise processing_error(f"Failed to extract text from PDF: {e}") from e

    try:
        if document.page_count == 0:
            raise processing_error("PDF has no pages")

        text = ""
        failed_pages = 0
        for page_number in range(document.page_count):
            try:
                page = document.load_page(page_number)
                text += page.get_text("text") + "\n"
            except Exception as e:
                failed_pages += 1
                logger.warning("[Extract] Error processing page %d: %s", page_number + 1, e)

        if failed_pages:
            logger.info(
                "[Extract] %d of %d page(s) skipped", failed_pages, document.page_count
            )
    except ServiceError:
        raise
    except Exception as e:
        raise processing_error(f"Failed to extract text from PDF: {e}") from e
    finally:
        document.close()

    cleaned = text.strip()
    if not cleaned:
        raise processing_error("PDF contains no extractable text")

    return cleaned
