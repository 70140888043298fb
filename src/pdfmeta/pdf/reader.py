# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Reads the Info dictionary and the Catalog's XMP stream."""

import logging
from typing import NamedTuple

from ..exceptions import XMPDecodeError
from ..model import ALL_FIELDS, Metadata
from ..xmp import unmarshal
from .lexer import (
    ObjRef,
    decode_pdf_string,
    find_dict_value,
    first_dict,
    last_trailer_dict,
    object_body,
    parse_named_ref,
    stream_content,
)

logger = logging.getLogger(__name__)


class NativeMetadata(NamedTuple):
    """Metadata merged from both native sections plus presence flags."""

    metadata: Metadata
    info_found: bool
    xmp_found: bool


def parse_trailer_refs(data: bytes) -> tuple[ObjRef, ObjRef | None] | None:
    """Returns the trailer's (``/Root``, ``/Info``) references.

    None when there is no trailer dictionary or it lacks ``/Root``.
    """
    trailer = last_trailer_dict(data)
    if trailer is None:
        return None
    root = parse_named_ref(trailer, "Root")
    if root is None:
        return None
    return root, parse_named_ref(trailer, "Info")


def parse_info_dict(dictionary: bytes) -> Metadata:
    """Decodes the eight known keys of an Info dictionary."""
    return Metadata(
        **{f.attr: decode_pdf_string(find_dict_value(dictionary, f.label)) for f in ALL_FIELDS}
    )


def merge_metadata(primary: Metadata, fallback: Metadata) -> Metadata:
    """Returns ``primary`` with its empty fields filled from ``fallback``."""
    return Metadata(
        **{f.attr: primary.get(f) or fallback.get(f) for f in ALL_FIELDS}
    )


def _read_info(data: bytes, ref: ObjRef) -> Metadata | None:
    body = object_body(data, ref.obj, ref.gen)
    if body is None:
        logger.debug("Info object %d %d not found", ref.obj, ref.gen)
        return None
    dictionary = first_dict(body)
    if dictionary is None:
        return None
    return parse_info_dict(dictionary)


def _read_xmp(data: bytes, root: ObjRef) -> Metadata | None:
    root_body = object_body(data, root.obj, root.gen)
    if root_body is None:
        logger.debug("Catalog object %d %d not found", root.obj, root.gen)
        return None
    root_dict = first_dict(root_body)
    if root_dict is None:
        return None
    ref = parse_named_ref(root_dict, "Metadata")
    if ref is None:
        return None
    body = object_body(data, ref.obj, ref.gen)
    if body is None:
        return None
    stream = stream_content(body)
    if stream is None:
        return None
    try:
        return unmarshal(stream)
    except XMPDecodeError as e:
        logger.debug("Ignoring undecodable XMP stream: %s", e)
        return None


def read_native_metadata(data: bytes) -> NativeMetadata:
    """Reads Info and XMP metadata from raw PDF bytes.

    XMP values take precedence; empty XMP fields are filled from Info.
    Missing sections, keys and undecodable XMP never raise.

    Args:
        data: Complete PDF file content.

    Returns:
        The merged metadata with ``info_found`` and ``xmp_found`` flags.
    """
    refs = parse_trailer_refs(data)
    if refs is None:
        return NativeMetadata(Metadata(), False, False)
    root, info_ref = refs

    info = None
    if info_ref is not None and info_ref.obj > 0:
        info = _read_info(data, info_ref)

    xmp = None
    if root.obj > 0:
        xmp = _read_xmp(data, root)

    meta = Metadata()
    if xmp is not None:
        meta = xmp
    if info is not None:
        meta = merge_metadata(meta, info)
    return NativeMetadata(meta, info is not None, xmp is not None)
