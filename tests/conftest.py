# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Pytest fixtures for the pdfmeta test suite."""

from io import BytesIO
from pathlib import Path

import pikepdf
import pytest
from pikepdf import Array, Dictionary, Name, Pdf

from pdfmeta.model import Metadata
from pdfmeta.xmp import marshal

# -- Global PDF tracker --

_tracked_pdfs: list[Pdf] = []


@pytest.fixture(autouse=True)
def _auto_close_pdfs():
    """Close all tracked PDF objects after each test."""
    yield
    for pdf in reversed(_tracked_pdfs):
        try:
            pdf.close()
        except Exception:
            pass
    _tracked_pdfs.clear()


def new_pdf(**kwargs) -> Pdf:
    """Create a tracked Pdf (auto-closed after test)."""
    pdf = Pdf.new(**kwargs)
    _tracked_pdfs.append(pdf)
    return pdf


def open_pdf(source, **kwargs) -> Pdf:
    """Open a tracked Pdf (auto-closed after test)."""
    pdf = Pdf.open(source, **kwargs)
    _tracked_pdfs.append(pdf)
    return pdf


def save_pdf(pdf: Pdf, target) -> None:
    """Save with a classic xref table and uncompressed streams."""
    pdf.save(
        target,
        object_stream_mode=pikepdf.ObjectStreamMode.disable,
        compress_streams=False,
    )


# -- Hand-built PDFs --

CATALOG = b"<< /Type /Catalog /Pages 2 0 R >>"
PAGES = b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>"
PAGE = b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>"


def make_pdf(
    objects: list[bytes] | None = None,
    trailer: bytes = b"/Root 1 0 R",
    header: bytes = b"%PDF-1.4\n",
    eof_newline: bool = True,
) -> bytes:
    """Builds a classic single-section PDF with a correct xref table.

    Args:
        objects: Object bodies numbered from 1; defaults to a one-page
            Catalog/Pages/Page tree.
        trailer: Extra trailer entries; ``/Size`` is added automatically.
        header: Bytes written before the first object.
        eof_newline: End the file with a newline after ``%%EOF``.

    Returns:
        The PDF file content.
    """
    if objects is None:
        objects = [CATALOG, PAGES, PAGE]

    out = bytearray(header)
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n%s\nendobj\n" % (num, body)

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d %s >>\n" % (len(objects) + 1, trailer)
    out += b"startxref\n%d\n%%%%EOF" % xref_offset
    if eof_newline:
        out += b"\n"
    return bytes(out)


def xmp_stream_object(packet: bytes) -> bytes:
    """Wraps an XMP packet as an uncompressed metadata stream object body."""
    return b"<< /Type /Metadata /Subtype /XML /Length %d >>\nstream\n%s\nendstream" % (
        len(packet),
        packet,
    )


# -- Fixtures --


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Temporary directory for tests.

    Args:
        tmp_path: Pytest-provided temporary directory.

    Returns:
        Path to the temporary directory.
    """
    return tmp_path


@pytest.fixture
def minimal_pdf_bytes() -> bytes:
    """Hand-built one-page PDF without Info or XMP metadata."""
    return make_pdf()


@pytest.fixture
def minimal_pdf(tmp_dir: Path, minimal_pdf_bytes: bytes) -> Path:
    """Hand-built one-page PDF on disk.

    Args:
        tmp_dir: Temporary directory.
        minimal_pdf_bytes: PDF data as bytes.

    Returns:
        Path to the PDF file.
    """
    pdf_path = tmp_dir / "minimal.pdf"
    pdf_path.write_bytes(minimal_pdf_bytes)
    return pdf_path


@pytest.fixture
def both_sections_pdf_bytes() -> bytes:
    """PDF with an Info dictionary and an XMP stream holding different values.

    XMP has Title and Producer; Info has Title, Author and Producer.
    """
    packet = marshal(Metadata(title="XMP Title", producer="XMP Producer"))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R /Metadata 5 0 R >>",
        PAGES,
        PAGE,
        b"<< /Title (Info Title) /Author (Info Author) /Producer (Info Producer) >>",
        xmp_stream_object(packet),
    ]
    return make_pdf(objects, trailer=b"/Root 1 0 R /Info 4 0 R")


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Minimal valid PDF written by pikepdf.

    Returns:
        PDF data as bytes.
    """
    pdf = new_pdf()
    page = pikepdf.Page(Dictionary(Type=Name.Page, MediaBox=Array([0, 0, 612, 792])))
    pdf.pages.append(page)

    buffer = BytesIO()
    save_pdf(pdf, buffer)
    return buffer.getvalue()


@pytest.fixture
def sample_pdf(tmp_dir: Path, sample_pdf_bytes: bytes) -> Path:
    """Minimal valid pikepdf PDF on disk.

    Args:
        tmp_dir: Temporary directory.
        sample_pdf_bytes: PDF data as bytes.

    Returns:
        Path to the PDF file.
    """
    pdf_path = tmp_dir / "sample.pdf"
    pdf_path.write_bytes(sample_pdf_bytes)
    return pdf_path


@pytest.fixture
def pdf_with_metadata(tmp_dir: Path) -> Path:
    """PDF with Info-Dictionary metadata.

    Args:
        tmp_dir: Temporary directory.

    Returns:
        Path to the PDF file with metadata.
    """
    pdf = new_pdf()
    page = pikepdf.Page(Dictionary(Type=Name.Page, MediaBox=Array([0, 0, 612, 792])))
    pdf.pages.append(page)

    pdf.docinfo["/Title"] = "Test Document"
    pdf.docinfo["/Author"] = "Test Author"
    pdf.docinfo["/Subject"] = "Test Subject"
    pdf.docinfo["/Keywords"] = "test, pdf, metadata"
    pdf.docinfo["/Creator"] = "Test Creator"
    pdf.docinfo["/Producer"] = "Test Producer"
    pdf.docinfo["/CreationDate"] = "D:20240115103000Z"

    pdf_path = tmp_dir / "with_metadata.pdf"
    save_pdf(pdf, pdf_path)
    return pdf_path


@pytest.fixture
def encrypted_pdf(tmp_dir: Path) -> Path:
    """Encrypted PDF for error tests.

    Args:
        tmp_dir: Temporary directory.

    Returns:
        Path to the encrypted PDF file.
    """
    pdf = new_pdf()
    page = pikepdf.Page(Dictionary(Type=Name.Page, MediaBox=Array([0, 0, 612, 792])))
    pdf.pages.append(page)

    encrypted_path = tmp_dir / "encrypted.pdf"
    pdf.save(
        encrypted_path,
        encryption=pikepdf.Encryption(owner="testpassword"),
        object_stream_mode=pikepdf.ObjectStreamMode.disable,
    )
    return encrypted_path


@pytest.fixture
def store_path(tmp_dir: Path) -> Path:
    """Template store location inside the temporary directory."""
    return tmp_dir / "store" / "templates.json"
