import logging

import fitz  # PyMuPDF

from policylens.worker.errors import FatalInputError

logger = logging.getLogger(__name__)


def extract_pages(pdf_bytes: bytes) -> list[dict]:
    """
    Extract text from PDF bytes, page by page.
    Returns list of {page_number, text, extraction_status, extraction_error, text_length} dicts.
    Raises FatalInputError when the document cannot be opened at all.
    """
    pages = []
    doc = None
    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        for page_num in range(len(doc)):
            page_data = {
                "page_number": page_num + 1,  # 1-indexed
                "text": None,
                "extraction_status": "failed",
                "extraction_error": None,
                "text_length": 0,
            }
            try:
                text = doc[page_num].get_text()
                text_length = len(text.strip())
                if text_length == 0:
                    page_data["extraction_status"] = "empty"
                    page_data["extraction_error"] = "No text found on this page (may be image-only or blank)"
                else:
                    page_data["extraction_status"] = "success"
                    page_data["text"] = text
                    page_data["text_length"] = text_length
            except Exception as e:
                page_data["extraction_error"] = f"Error extracting text: {str(e)}"
            pages.append(page_data)
    except Exception as e:
        raise FatalInputError(f"Failed to open PDF: {str(e)}") from e
    finally:
        if doc:
            doc.close()
    return pages


def extract_text(data: bytes, filename: str = "") -> str:
    """Full document text from an uploaded file (.txt decoded as UTF-8, anything else read as PDF)."""
    if not data:
        raise FatalInputError("Empty document")

    if filename.lower().endswith(".txt"):
        text = data.decode("utf-8", errors="replace")
    else:
        pages = extract_pages(data)
        failed = [p["page_number"] for p in pages if p["extraction_status"] == "failed"]
        if failed:
            logger.warning("Text extraction failed on pages %s of %s", failed, filename or "<upload>")
        text = "\n".join(p["text"] for p in pages if p["text"])

    if not text.strip():
        raise FatalInputError(f"No extractable text in {filename or 'document'}")
    return text
