"""Input decoding for scanned pages."""

import base64
import binascii
import io
import logging
from typing import Dict, Iterable, List

import pypdf
from pypdf.errors import PyPdfError

from scribe.errors import InvalidInput
from scribe.models import MediaPayload

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"


def is_supported(mime_type: str) -> bool:
    return mime_type.startswith("image/") or mime_type == PDF_MIME_TYPE


def decode_upload(entry: Dict[str, object]) -> MediaPayload:
    """Decode one ``{"data": <base64>, "mime_type": ..., "name": ...}`` entry."""
    mime_type = str(entry.get("mime_type", ""))
    name = str(entry.get("name", ""))
    if not is_supported(mime_type):
        raise InvalidInput(f"{name or 'File'} is not an image or PDF ({mime_type})")

    raw = str(entry.get("data", ""))
    if raw.startswith("data:") and "," in raw:
        raw = raw.split(",", 1)[1]
    try:
        data = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInput(f"{name or 'File'} is not valid base64") from exc
    if not data:
        raise InvalidInput(f"{name or 'File'} is empty")
    return MediaPayload(data=data, mime_type=mime_type, name=name)


def split_pdf_pages(payload: MediaPayload) -> List[MediaPayload]:
    """Split a PDF into one single-page PDF per page."""
    try:
        reader = pypdf.PdfReader(io.BytesIO(payload.data))
        pages: List[MediaPayload] = []
        for number, page in enumerate(reader.pages, start=1):
            writer = pypdf.PdfWriter()
            writer.add_page(page)
            buffer = io.BytesIO()
            writer.write(buffer)
            pages.append(
                MediaPayload(
                    data=buffer.getvalue(),
                    mime_type=PDF_MIME_TYPE,
                    name=f"{payload.name} (page {number})",
                )
            )
    except PyPdfError as exc:
        raise InvalidInput(f"Could not read PDF {payload.name}: {exc}") from exc

    logger.debug("Split %s into %d pages", payload.name, len(pages))
    return pages


def expand_pages(payloads: Iterable[MediaPayload], max_files: int) -> List[MediaPayload]:
    """Replace every PDF with its pages and enforce the page limit."""
    pages: List[MediaPayload] = []
    for payload in payloads:
        if payload.mime_type == PDF_MIME_TYPE:
            pages.extend(split_pdf_pages(payload))
        else:
            pages.append(payload)
    if len(pages) > max_files:
        raise InvalidInput(
            f"Cannot process more than {max_files} pages at once (got {len(pages)})"
        )
    return pages
