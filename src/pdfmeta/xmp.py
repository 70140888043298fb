# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""XMP packet codec for the canonical metadata fields."""

import logging
import re

from lxml import etree

from .exceptions import XMPDecodeError
from .model import Metadata

logger = logging.getLogger(__name__)

XMP_HEADER = b'<?xpacket begin="\xef\xbb\xbf" id="W5M0MpCehiHzreSzNTczkc9d"?>\n'
XMP_TRAILER = b'<?xpacket end="w"?>\n'
XMPMETA_OPEN = b"<x:xmpmeta"
XMPMETA_CLOSE = b"</x:xmpmeta>"

_PACKET_OPEN = (
    '<x:xmpmeta xmlns:x="adobe:ns:meta/" x:xmptk="pdfmeta">\n'
    '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">\n'
    '<rdf:Description rdf:about=""'
    ' xmlns:dc="http://purl.org/dc/elements/1.1/"'
    ' xmlns:pdf="http://ns.adobe.com/pdf/1.3/"'
    ' xmlns:xmp="http://ns.adobe.com/xap/1.0/">\n'
)
_PACKET_CLOSE = "</rdf:Description>\n</rdf:RDF>\n</x:xmpmeta>\n"

# Characters not allowed in XML 1.0 documents
_XML_ILLEGAL_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")
# Keywords that end a PDF object or stream body
_END_KEYWORD_RE = re.compile(r"e(?=nd(?:obj|stream))")
_XML_ESCAPES = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&#34;",
        "'": "&#39;",
        "\t": "&#x9;",
        "\n": "&#xA;",
        "\r": "&#xD;",
    }
)

# (stack suffix, attribute, first non-empty value wins)
_FIELD_PATHS: tuple[tuple[tuple[str, ...], str, bool], ...] = (
    (("title", "Alt", "li"), "title", True),
    (("creator", "Seq", "li"), "author", True),
    (("description", "Alt", "li"), "subject", True),
    (("Keywords",), "keywords", False),
    (("CreatorTool",), "creator", False),
    (("Producer",), "producer", False),
    (("CreateDate",), "creation_date", False),
    (("ModifyDate",), "mod_date", False),
)

_SECURE_XML_PARSER_OPTIONS = {"resolve_entities": False, "no_network": True}


def _escape_text(value: str) -> str:
    escaped = _XML_ILLEGAL_RE.sub("\ufffd", value).translate(_XML_ESCAPES)
    return _END_KEYWORD_RE.sub("&#101;", escaped)


def _lang_alt(key: str, value: str) -> str:
    if not value:
        return ""
    return f'<{key}><rdf:Alt><rdf:li xml:lang="x-default">{_escape_text(value)}</rdf:li></rdf:Alt></{key}>\n'


def _seq(key: str, value: str) -> str:
    if not value:
        return ""
    return f"<{key}><rdf:Seq><rdf:li>{_escape_text(value)}</rdf:li></rdf:Seq></{key}>\n"


def _simple(key: str, value: str) -> str:
    if not value:
        return ""
    return f"<{key}>{_escape_text(value)}</{key}>\n"


def marshal(metadata: Metadata) -> bytes:
    """Serializes metadata into an XMP packet.

    Empty fields are omitted. The element order is fixed.

    Args:
        metadata: Canonical metadata.

    Returns:
        UTF-8 encoded packet including the xpacket wrapper.
    """
    body = "".join(
        [
            _lang_alt("dc:title", metadata.title),
            _seq("dc:creator", metadata.author),
            _lang_alt("dc:description", metadata.subject),
            _simple("pdf:Keywords", metadata.keywords),
            _simple("xmp:CreatorTool", metadata.creator),
            _simple("pdf:Producer", metadata.producer),
            _simple("xmp:CreateDate", metadata.creation_date),
            _simple("xmp:ModifyDate", metadata.mod_date),
        ]
    )
    return XMP_HEADER + (_PACKET_OPEN + body + _PACKET_CLOSE).encode("utf-8") + XMP_TRAILER


class _PacketTarget:
    """lxml parser target mapping character data by element path."""

    def __init__(self) -> None:
        self.stack: list[str] = []
        self.values: dict[str, str] = {}
        self.saw_xmpmeta = False
        self._text: list[str] = []

    def _matches(self, suffix: tuple[str, ...]) -> bool:
        return len(self.stack) >= len(suffix) and tuple(self.stack[-len(suffix) :]) == suffix

    def _flush(self) -> None:
        value = "".join(self._text).strip()
        self._text.clear()
        if not value:
            return
        for suffix, attr, first_wins in _FIELD_PATHS:
            if self._matches(suffix):
                if not (first_wins and self.values.get(attr)):
                    self.values[attr] = value
                return

    def start(self, tag, attrib) -> None:
        self._flush()
        # "{namespace}local", or "prefix:local" when a prefix is undeclared
        local = tag.rsplit("}", 1)[-1].rsplit(":", 1)[-1]
        self.stack.append(local)
        if local == "xmpmeta":
            self.saw_xmpmeta = True

    def end(self, tag) -> None:
        self._flush()
        if self.stack:
            self.stack.pop()

    def data(self, data: str) -> None:
        self._text.append(data)

    def close(self) -> "_PacketTarget":
        self._flush()
        return self


def unmarshal(packet: bytes) -> Metadata:
    """Parses an XMP packet into canonical metadata.

    Args:
        packet: Raw XMP bytes, with or without the xpacket wrapper.

    Returns:
        Metadata holding every recognized field.

    Raises:
        XMPDecodeError: If the XML is malformed or has no ``xmpmeta`` element.
    """
    if not packet.strip():
        raise XMPDecodeError("xmp packet not found")

    parser = etree.XMLParser(target=_PacketTarget(), **_SECURE_XML_PARSER_OPTIONS)
    try:
        target = etree.fromstring(packet, parser)
    except etree.ParseError as e:
        raise XMPDecodeError(f"decode xml: {e}") from e

    if not target.saw_xmpmeta:
        raise XMPDecodeError("xmp packet not found")
    return Metadata(**target.values)


def extract(pdf_bytes: bytes) -> bytes | None:
    """Returns the first ``<x:xmpmeta ...>...</x:xmpmeta>`` section, if any."""
    start = pdf_bytes.find(XMPMETA_OPEN)
    if start < 0:
        return None
    end = pdf_bytes.find(XMPMETA_CLOSE, start)
    if end < 0:
        return None
    return pdf_bytes[start : end + len(XMPMETA_CLOSE)]


def upsert(pdf_bytes: bytes, metadata: Metadata) -> bytes:
    """Writes a fresh packet into raw bytes.

    An existing ``xmpmeta`` section is replaced in place. Otherwise the
    packet goes before the last ``%%EOF``, or at the end when there is none.
    """
    packet = marshal(metadata)

    start = pdf_bytes.find(XMPMETA_OPEN)
    if start >= 0:
        end = pdf_bytes.find(XMPMETA_CLOSE, start)
        if end >= 0:
            end += len(XMPMETA_CLOSE)
            logger.debug("Replacing XMP section at %d-%d", start, end)
            return pdf_bytes[:start] + packet + pdf_bytes[end:]

    eof = pdf_bytes.rfind(b"%%EOF")
    if eof < 0:
        return pdf_bytes + packet
    return pdf_bytes[:eof] + packet + pdf_bytes[eof:]
