# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Byte-level helpers over raw PDF data.

These helpers locate the header, the last trailer, ``startxref``, indirect
objects and dictionary values without building an object model. They work on
``bytes``, never raise on arbitrary input and return None (or an empty value)
when a structure cannot be found.
"""

import re
from typing import NamedTuple

HEADER_MARKER = b"%PDF-"
HEADER_SCAN_WINDOW = 1024

# PDF whitespace (ISO 32000-1, Table 1) and delimiters (Table 2)
PDF_WHITESPACE = b"\x00\t\n\x0c\r "
PDF_DELIMITERS = b"()<>[]{}/%"
NAME_TERMINATORS = PDF_WHITESPACE + PDF_DELIMITERS

# Whitespace accepted between tokens of "N G obj" and "N G R"
_TOKEN_SPACE = b" \t\n\x0c\r"
_DIGITS = b"0123456789"
# Longer digit runs cannot be valid object numbers or offsets
_MAX_DIGITS = 18

_UTF16BE_BOM = b"\xfe\xff"
_UTF8_BOM = b"\xef\xbb\xbf"
_HEX_PAIR_RE = re.compile(rb"[0-9A-Fa-f]{2}")
# Keywords that end an object or stream body
_END_KEYWORD_RE = re.compile(rb"e(?=nd(?:obj|stream))")

_LITERAL_UNESCAPES = {
    ord("n"): b"\n",
    ord("r"): b"\r",
    ord("t"): b"\t",
    ord("b"): b"\b",
    ord("f"): b"\f",
    ord("("): b"(",
    ord(")"): b")",
    ord("\\"): b"\\",
}

_LITERAL_ESCAPES = str.maketrans(
    {
        "\\": "\\\\",
        "(": "\\(",
        ")": "\\)",
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
    }
)


class ObjRef(NamedTuple):
    """Indirect reference ``obj gen R``."""

    obj: int
    gen: int


def _is_word(byte: int) -> bool:
    return byte == 0x5F or (0x30 <= byte <= 0x39) or (0x41 <= byte <= 0x5A) or (0x61 <= byte <= 0x7A)


def _to_int(digits: bytes) -> int | None:
    if not digits or len(digits) > _MAX_DIGITS or not digits.isdigit():
        return None
    return int(digits)


def find_header_offset(data: bytes) -> int:
    """Returns the offset of ``%PDF-`` within the first 1024 bytes, or -1."""
    return data.find(HEADER_MARKER, 0, HEADER_SCAN_WINDOW)


def parse_version(data: bytes, header_offset: int) -> str:
    """Returns the text between ``%PDF-`` and the next line break, space or tab."""
    if header_offset < 0:
        return ""
    start = header_offset + len(HEADER_MARKER)
    end = start
    while end < len(data) and data[end] not in b"\n\r \t":
        end += 1
    return data[start:end].decode("latin-1")


def parse_startxref(data: bytes) -> int | None:
    """Returns the byte offset named after the last ``startxref`` keyword."""
    idx = data.rfind(b"startxref")
    if idx < 0:
        return None
    tokens = data[idx + len(b"startxref") :].split(None, 1)
    if not tokens:
        return None
    return _to_int(tokens[0])


def match_dict_end(data: bytes, start: int) -> int:
    """Finds the ``>>`` closing the dictionary opened at ``start``.

    Args:
        data: Buffer to scan.
        start: Offset of an opening ``<<``.

    Returns:
        Offset of the matching ``>>``, or -1 when the delimiters never balance.
    """
    depth = 0
    pos = start
    while True:
        opening = data.find(b"<<", pos)
        closing = data.find(b">>", pos)
        if closing < 0:
            return -1
        if 0 <= opening < closing:
            depth += 1
            pos = opening + 2
            continue
        depth -= 1
        if depth == 0:
            return closing
        pos = closing + 2


def first_dict(body: bytes) -> bytes | None:
    """Returns the first balanced ``<< ... >>`` in ``body``, delimiters included."""
    start = body.find(b"<<")
    if start < 0:
        return None
    end = match_dict_end(body, start)
    if end < 0:
        return None
    return body[start : end + 2]


def last_trailer_dict(data: bytes) -> bytes | None:
    """Returns the dictionary following the last ``trailer`` keyword."""
    idx = data.rfind(b"trailer")
    if idx < 0:
        return None
    return first_dict(data[idx + len(b"trailer") :])


def _named_ref_re(name: str) -> re.Pattern[bytes]:
    return re.compile(
        rb"/" + re.escape(name.encode("latin-1")) + rb"\s+(\d{1,18})\s+(\d{1,18})\s+R"
    )


def parse_named_ref(dictionary: bytes, name: str) -> ObjRef | None:
    """Parses ``/Name obj gen R`` from a dictionary."""
    m = _named_ref_re(name).search(dictionary)
    if m is None:
        return None
    return ObjRef(int(m.group(1)), int(m.group(2)))


def upsert_named_ref(dictionary: bytes, key: str, ref: ObjRef) -> bytes:
    """Points ``/key`` at ``ref``, replacing an existing reference or inserting one.

    A new entry is inserted on its own line before the final ``>>``. A
    buffer without ``>>`` is returned unchanged.
    """
    replacement = b"/%s %d %d R" % (key.encode("latin-1"), ref.obj, ref.gen)
    pattern = _named_ref_re(key)
    if pattern.search(dictionary):
        return pattern.sub(lambda _m: replacement, dictionary)
    idx = dictionary.rfind(b">>")
    if idx < 0:
        return dictionary
    return dictionary[:idx] + b"\n" + replacement + b"\n" + dictionary[idx:]


def object_body(data: bytes, obj: int, gen: int) -> bytes | None:
    """Returns the bytes between ``obj gen obj`` and the next ``endobj``.

    The object header must start the buffer or follow a CR or LF.
    """
    number = b"%d" % obj
    tail = re.compile(rb"\s+%d\s+obj(?![A-Za-z0-9_])" % gen)
    pos = 0
    while True:
        i = data.find(number, pos)
        if i < 0:
            return None
        pos = i + 1
        if i > 0 and data[i - 1] not in b"\r\n":
            continue
        m = tail.match(data, i + len(number))
        if m is None:
            continue
        start = m.end()
        end = start
        while True:
            end = data.find(b"endobj", end)
            if end < 0:
                return None
            if end == 0 or not _is_word(data[end - 1]):
                return data[start:end]
            end += 1


def stream_content(body: bytes) -> bytes | None:
    """Returns the payload between ``stream`` and ``endstream``.

    One EOL after ``stream`` is skipped and trailing CR/LF bytes are removed.
    """
    i = body.find(b"stream")
    if i < 0:
        return None
    start = i + len(b"stream")
    end = body.find(b"endstream", start)
    if end < 0:
        return None
    if body.startswith(b"\r\n", start):
        start += 2
    elif body.startswith(b"\n", start):
        start += 1
    return body[start:end].rstrip(b"\r\n")


def _scan_literal(data: bytes, start: int) -> int:
    """Returns the offset just past the literal string opened at ``start``, or -1."""
    depth = 0
    i = start
    while i < len(data):
        c = data[i]
        if c == 0x5C:  # backslash
            i += 2
            continue
        if c == 0x28:
            depth += 1
        elif c == 0x29:
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return -1


def _scan_value(data: bytes, start: int) -> bytes | None:
    if start >= len(data):
        return None
    c = data[start : start + 1]
    if c == b"(":
        end = _scan_literal(data, start)
        return data[start:end] if end > 0 else None
    if c == b"<":
        if data.startswith(b"<<", start):
            return None
        end = data.find(b">", start)
        return data[start : end + 1] if end > 0 else None
    if c == b"/":
        end = start + 1
        while end < len(data) and data[end] not in NAME_TERMINATORS:
            end += 1
        return data[start:end] if end > start + 1 else None
    return None


def find_dict_value(dictionary: bytes, key: str) -> bytes:
    """Returns the raw string or name value of ``/key``, delimiters included.

    Only literal strings ``(...)``, hex strings ``<...>`` and names ``/...``
    are recognized. Returns empty bytes when the key is absent or holds
    another kind of value.
    """
    token = b"/" + key.encode("latin-1")
    pos = 0
    while True:
        i = dictionary.find(token, pos)
        if i < 0:
            return b""
        pos = i + 1
        j = i + len(token)
        if j < len(dictionary) and dictionary[j] not in NAME_TERMINATORS:
            continue
        while j < len(dictionary) and dictionary[j] in PDF_WHITESPACE:
            j += 1
        value = _scan_value(dictionary, j)
        if value is not None:
            return value


def _unescape_literal(body: bytes) -> bytes:
    out = bytearray()
    i = 0
    n = len(body)
    while i < n:
        c = body[i]
        if c != 0x5C:
            out.append(c)
            i += 1
            continue
        i += 1
        if i >= n:
            break
        c = body[i]
        if c in _LITERAL_UNESCAPES:
            out += _LITERAL_UNESCAPES[c]
            i += 1
        elif 0x30 <= c <= 0x37:
            j = i
            while j < n and j < i + 3 and 0x30 <= body[j] <= 0x37:
                j += 1
            out.append(int(body[i:j], 8) & 0xFF)
            i = j
        elif c == 0x0D:
            # Line continuation
            i += 2 if body.startswith(b"\n", i + 1) else 1
        elif c == 0x0A:
            i += 1
        else:
            out.append(c)
            i += 1
    return bytes(out)


def _decode_name(body: bytes) -> bytes:
    out = bytearray()
    i = 0
    while i < len(body):
        if body[i] == 0x23 and _HEX_PAIR_RE.fullmatch(body, i + 1, i + 3):
            out.append(int(body[i + 1 : i + 3], 16))
            i += 3
            continue
        out.append(body[i])
        i += 1
    return bytes(out)


def decode_text(raw: bytes) -> str:
    """Decodes PDF text string bytes.

    UTF-16BE is used when the bytes start with its byte order mark, UTF-8
    when they start with the UTF-8 mark or are valid UTF-8, Latin-1 otherwise.
    """
    if raw.startswith(_UTF16BE_BOM):
        return raw[2:].decode("utf-16-be", errors="replace")
    if raw.startswith(_UTF8_BOM):
        return raw[3:].decode("utf-8", errors="replace")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def decode_pdf_string(raw: bytes) -> str:
    """Decodes a raw value lexeme as returned by :func:`find_dict_value`.

    Args:
        raw: ``(literal)``, ``<hex>``, ``/Name`` or any other token.

    Returns:
        Decoded text. Invalid hex strings decode to an empty string; other
        tokens are returned as text unchanged.
    """
    raw = raw.strip()
    if not raw:
        return ""
    if len(raw) >= 2 and raw.startswith(b"(") and raw.endswith(b")"):
        return decode_text(_unescape_literal(raw[1:-1]))
    if len(raw) >= 2 and raw.startswith(b"<") and raw.endswith(b">"):
        digits = bytes(b for b in raw[1:-1] if b not in PDF_WHITESPACE)
        if len(digits) % 2 == 1:
            digits += b"0"
        try:
            return decode_text(bytes.fromhex(digits.decode("latin-1")))
        except ValueError:
            return ""
    if raw.startswith(b"/"):
        return decode_text(_decode_name(raw[1:]))
    return decode_text(raw)


def escape_pdf_literal(s: str) -> str:
    """Escapes text for use inside a ``(...)`` literal string."""
    return s.translate(_LITERAL_ESCAPES)


def encode_pdf_literal(s: str) -> bytes:
    """Returns ``s`` as an escaped literal string body.

    ASCII text is written as is; anything else as UTF-16BE with a byte
    order mark. The ``e`` of an embedded ``endobj`` or ``endstream`` is
    written as ``\\145``.
    """
    if s.isascii():
        encoded = escape_pdf_literal(s).encode("ascii")
    else:
        raw = _UTF16BE_BOM + s.encode("utf-16-be")
        encoded = escape_pdf_literal(raw.decode("latin-1")).encode("latin-1")
    return _END_KEYWORD_RE.sub(rb"\\145", encoded)


def _object_number_before(data: bytes, keyword: int) -> int | None:
    """Parses ``obj gen`` backwards from the ``obj`` keyword at ``keyword``."""
    i = keyword
    numbers = []
    for _ in range(2):
        j = i
        while j > 0 and data[j - 1] in _TOKEN_SPACE:
            j -= 1
        if j == i:
            return None
        k = j
        while k > 0 and data[k - 1] in _DIGITS and j - k <= _MAX_DIGITS:
            k -= 1
        value = _to_int(data[k:j])
        if value is None:
            return None
        numbers.append(value)
        i = k
    return numbers[1]


def max_object_number(data: bytes) -> int:
    """Returns the largest object number among ``N G obj`` headers, or 0."""
    best = 0
    pos = data.find(b"obj")
    while pos >= 0:
        end = pos + 3
        if end >= len(data) or not _is_word(data[end]):
            number = _object_number_before(data, pos)
            if number is not None and number > best:
                best = number
        pos = data.find(b"obj", end)
    return best


def has_encrypt_marker(data: bytes) -> bool:
    """Returns True if the last trailer section names ``/Encrypt``.

    The section runs from the last ``trailer`` up to the next ``startxref``
    (or the end of the data). ``/Encrypt`` only counts when followed by PDF
    whitespace, a delimiter or the end of the section.
    """
    idx = data.rfind(b"trailer")
    if idx < 0:
        return False
    end = data.find(b"startxref", idx)
    section = data[idx:end] if end >= 0 else data[idx:]
    key = b"/Encrypt"
    pos = section.find(key)
    while pos >= 0:
        after = pos + len(key)
        if after >= len(section) or section[after] in NAME_TERMINATORS:
            return True
        pos = section.find(key, pos + 1)
    return False
