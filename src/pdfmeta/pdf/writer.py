# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Incremental update writer.

The original bytes are kept unchanged. Appended after them are a new Info
dictionary, an XMP metadata stream, a copy of the Catalog pointing at that
stream, a three-entry xref subsection and a trailer chaining to the previous
xref through ``/Prev``.
"""

import logging

from ..exceptions import MalformedPDFError
from ..model import ALL_FIELDS, Metadata
from .lexer import (
    ObjRef,
    encode_pdf_literal,
    first_dict,
    max_object_number,
    object_body,
    parse_startxref,
    upsert_named_ref,
)
from .reader import parse_trailer_refs

logger = logging.getLogger(__name__)

# Info keys in ASCII order
_INFO_FIELDS = sorted(ALL_FIELDS, key=lambda f: f.label)


def render_info_object(obj_num: int, metadata: Metadata) -> bytes:
    """Renders the Info dictionary object; blank values are left out."""
    parts = [b"%d 0 obj\n<<" % obj_num]
    for f in _INFO_FIELDS:
        value = metadata.get(f)
        if not value.strip():
            continue
        parts.append(b"\n/%s (%s)" % (f.label.encode("ascii"), encode_pdf_literal(value)))
    parts.append(b"\n>>\nendobj\n")
    return b"".join(parts)


def render_metadata_object(obj_num: int, packet: bytes) -> bytes:
    """Renders the XMP stream object; ``/Length`` is the packet length."""
    parts = [
        b"%d 0 obj\n" % obj_num,
        b"<< /Type /Metadata /Subtype /XML /Length %d >>\n" % len(packet),
        b"stream\n",
        packet,
    ]
    if not packet.endswith(b"\n"):
        parts.append(b"\n")
    parts.append(b"endstream\nendobj\n")
    return b"".join(parts)


def render_catalog_object(obj_num: int, dictionary: bytes) -> bytes:
    return b"%d 0 obj\n%s\nendobj\n" % (obj_num, dictionary.strip())


def render_xref(start_obj: int, offsets: list[int]) -> bytes:
    """Renders one xref subsection with an in-use entry per offset."""
    parts = [b"xref\n", b"%d %d\n" % (start_obj, len(offsets))]
    parts.extend(b"%010d 00000 n \n" % offset for offset in offsets)
    return b"".join(parts)


def render_trailer(size: int, root: ObjRef, info: ObjRef, prev: int) -> bytes:
    return b"trailer\n<< /Size %d /Root %d %d R /Info %d %d R /Prev %d >>\n" % (
        size,
        root.obj,
        root.gen,
        info.obj,
        info.gen,
        prev,
    )


def write_incremental(src: bytes, metadata: Metadata, xmp_packet: bytes) -> bytes:
    """Appends an incremental update carrying new Info and XMP metadata.

    Args:
        src: Complete original PDF bytes.
        metadata: Values for the new Info dictionary.
        xmp_packet: Serialized XMP packet for the new Metadata stream.

    Returns:
        ``src`` followed by the update section.

    Raises:
        MalformedPDFError: If the trailer root, ``startxref``, object
            numbers or the Catalog dictionary cannot be found.
    """
    refs = parse_trailer_refs(src)
    if refs is None:
        raise MalformedPDFError("could not parse trailer root reference")
    root, _ = refs

    start_xref = parse_startxref(src)
    if start_xref is None:
        raise MalformedPDFError("could not parse startxref")

    max_obj = max_object_number(src)
    if max_obj < 1:
        raise MalformedPDFError("could not detect object numbers")

    root_body = object_body(src, root.obj, root.gen)
    if root_body is None:
        raise MalformedPDFError("could not read catalog object")
    root_dict = first_dict(root_body)
    if root_dict is None:
        raise MalformedPDFError("catalog dictionary missing")

    info_obj = max_obj + 1
    metadata_obj = max_obj + 2
    catalog_obj = max_obj + 3

    catalog_dict = upsert_named_ref(root_dict, "Metadata", ObjRef(metadata_obj, 0))

    out = bytearray(src)
    if out and not out.endswith(b"\n"):
        out += b"\n"

    offsets = []
    for rendered in (
        render_info_object(info_obj, metadata),
        render_metadata_object(metadata_obj, xmp_packet),
        render_catalog_object(catalog_obj, catalog_dict),
    ):
        offsets.append(len(out))
        out += rendered

    xref_offset = len(out)
    out += render_xref(info_obj, offsets)
    out += render_trailer(catalog_obj + 1, ObjRef(catalog_obj, 0), ObjRef(info_obj, 0), start_xref)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset

    logger.debug(
        "Appended objects %d-%d (%d bytes) after xref at %d",
        info_obj,
        catalog_obj,
        len(out) - len(src),
        start_xref,
    )
    return bytes(out)
