import base64
import io

import pypdf
import pytest

from scribe.errors import InvalidInput
from scribe.files import decode_upload, expand_pages, is_supported, split_pdf_pages
from scribe.models import MediaPayload


def make_pdf(pages: int) -> bytes:
    writer = pypdf.PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def test_is_supported():
    assert is_supported("image/png")
    assert is_supported("image/jpeg")
    assert is_supported("application/pdf")
    assert not is_supported("text/plain")


def test_decode_upload():
    entry = {
        "data": base64.b64encode(b"png-bytes").decode(),
        "mime_type": "image/png",
        "name": "scan.png",
    }

    payload = decode_upload(entry)

    assert payload == MediaPayload(data=b"png-bytes", mime_type="image/png", name="scan.png")


def test_decode_upload_accepts_data_url():
    encoded = base64.b64encode(b"jpg").decode()
    entry = {"data": f"data:image/jpeg;base64,{encoded}", "mime_type": "image/jpeg"}

    assert decode_upload(entry).data == b"jpg"


def test_decode_upload_rejects_unsupported_type():
    with pytest.raises(InvalidInput, match="not an image or PDF"):
        decode_upload({"data": "aGk=", "mime_type": "text/plain", "name": "a.txt"})


def test_decode_upload_rejects_bad_base64():
    with pytest.raises(InvalidInput, match="not valid base64"):
        decode_upload({"data": "***", "mime_type": "image/png"})


def test_decode_upload_rejects_empty_data():
    with pytest.raises(InvalidInput, match="empty"):
        decode_upload({"data": "", "mime_type": "image/png"})


def test_split_pdf_pages():
    payload = MediaPayload(data=make_pdf(3), mime_type="application/pdf", name="book.pdf")

    pages = split_pdf_pages(payload)

    assert [page.name for page in pages] == [
        "book.pdf (page 1)",
        "book.pdf (page 2)",
        "book.pdf (page 3)",
    ]
    for page in pages:
        assert page.mime_type == "application/pdf"
        assert len(pypdf.PdfReader(io.BytesIO(page.data)).pages) == 1


def test_split_pdf_pages_rejects_garbage():
    payload = MediaPayload(data=b"not a pdf", mime_type="application/pdf", name="x.pdf")

    with pytest.raises(InvalidInput, match="Could not read PDF"):
        split_pdf_pages(payload)


def test_expand_pages_keeps_order():
    image_a = MediaPayload(data=b"a", mime_type="image/png", name="a.png")
    image_b = MediaPayload(data=b"b", mime_type="image/png", name="b.png")
    pdf = MediaPayload(data=make_pdf(2), mime_type="application/pdf", name="doc.pdf")

    pages = expand_pages([image_a, pdf, image_b], max_files=10)

    assert [page.name for page in pages] == [
        "a.png",
        "doc.pdf (page 1)",
        "doc.pdf (page 2)",
        "b.png",
    ]


def test_expand_pages_enforces_limit():
    pdf = MediaPayload(data=make_pdf(3), mime_type="application/pdf", name="doc.pdf")

    with pytest.raises(InvalidInput, match="more than 2 pages"):
        expand_pages([pdf], max_files=2)
