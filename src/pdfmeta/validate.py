# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Request validation and metadata normalization.

Lenient mode trims values and canonicalizes common date layouts to RFC3339
UTC. Strict mode rejects any date that is neither RFC3339 nor a PDF date
token.
"""

import dataclasses
import logging
import re
from collections.abc import Iterable
from datetime import datetime, timezone

from .exceptions import ValidationError
from .model import (
    ALL_FIELDS,
    DATE_FIELDS,
    Field,
    IOOptions,
    Metadata,
    MetadataPatch,
    SetRequest,
    ShowRequest,
    TemplateApplyRequest,
    TemplateSaveRequest,
    UnsetRequest,
)

logger = logging.getLogger(__name__)

PDF_DATE_RE = re.compile(
    r"^D:\d{4}(\d{2}(\d{2}(\d{2}(\d{2}(\d{2}([Zz]|[+-]\d{2}'?\d{2}'?)?)?)?)?)?)?$"
)
RFC3339_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})$"
)

# All fields are zero padded.
# Every field is zero padded; strptime alone would accept "2026-2-7".
LENIENT_DATE_LAYOUTS = (
    (re.compile(r"^\d{4}-\d{2}-\d{2}$"), "%Y-%m-%d"),
    (re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$"), "%Y-%m-%d %H:%M:%S"),
    (re.compile(r"^\d{4}/\d{2}/\d{2}$"), "%Y/%m/%d"),
    (re.compile(r"^\d{4}/\d{2}/\d{2} \d{2}:\d{2}:\d{2}$"), "%Y/%m/%d %H:%M:%S"),
)
RFC3339_UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def _is_rfc3339(value: str) -> bool:
    if not RFC3339_RE.match(value):
        return False
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_date(value: str) -> bool:
    """Returns True for RFC3339 timestamps and PDF date tokens."""
    trimmed = value.strip()
    if not trimmed:
        return False
    return _is_rfc3339(trimmed) or PDF_DATE_RE.match(trimmed) is not None


def date_string(value: str, label: str = "date") -> None:
    """Validates a date value.

    Args:
        value: Candidate date.
        label: Field name used as message prefix.

    Raises:
        ValidationError: If the value is blank, or is neither RFC3339 nor a
            PDF date token.
    """
    if not value.strip():
        raise ValidationError(f"{label} must not be empty")
    if not is_valid_date(value):
        raise ValidationError(f"{label} must be RFC3339 or PDF date format")


def normalize_fields(fields: Iterable[str]) -> list[Field]:
    """Validates field selections and returns them in canonical order.

    Raises:
        ValidationError: On unknown or repeated fields.
    """
    seen: set[Field] = set()
    for name in fields:
        try:
            f = Field(name)
        except ValueError:
            raise ValidationError(f"unknown field {str(name)!r}") from None
        if f in seen:
            raise ValidationError(f"duplicate field {f.value!r}")
        seen.add(f)
    return [f for f in ALL_FIELDS if f in seen]


def normalize_date(value: str, strict: bool = False) -> tuple[str, bool]:
    """Trims and canonicalizes a date value.

    Args:
        value: Raw date.
        strict: Reject values that are neither RFC3339 nor PDF date tokens.

    Returns:
        Tuple of (normalized value, changed flag). Unrecognized values are
        returned trimmed in lenient mode.

    Raises:
        ValidationError: In strict mode, for invalid dates.
    """
    trimmed = value.strip()
    if not trimmed:
        return "", False
    if is_valid_date(trimmed):
        return trimmed, trimmed != value
    if strict:
        raise ValidationError("invalid date format")

    for pattern, layout in LENIENT_DATE_LAYOUTS:
        if not pattern.match(trimmed):
            continue
        try:
            parsed = datetime.strptime(trimmed, layout)
        except ValueError:
            continue
        canonical = parsed.replace(tzinfo=timezone.utc).strftime(RFC3339_UTC_FORMAT)
        logger.debug("Canonicalized date %r to %s", trimmed, canonical)
        return canonical, True
    return trimmed, False


def normalize_patch(patch: MetadataPatch, strict: bool = False) -> MetadataPatch:
    """Trims present patch fields and normalizes present dates."""
    changes: dict[str, str] = {}
    for f in ALL_FIELDS:
        value = patch.get(f)
        if value is None:
            continue
        if f in DATE_FIELDS:
            changes[f.attr], _ = normalize_date(value, strict)
        else:
            changes[f.attr] = value.strip()
    return dataclasses.replace(patch, **changes)


def normalize_metadata(meta: Metadata, strict: bool = False) -> tuple[Metadata, bool]:
    """Trims every field and normalizes both dates.

    Returns:
        Tuple of (normalized metadata, True if any value changed).
    """
    changed = False
    changes: dict[str, str] = {}
    for f in ALL_FIELDS:
        before = meta.get(f)
        if f in DATE_FIELDS:
            after, date_changed = normalize_date(before, strict)
            changed = changed or date_changed
        else:
            after = before.strip()
            changed = changed or after != before
        changes[f.attr] = after
    return Metadata(**changes), changed


def _io_options(io: IOOptions) -> None:
    if not io.input_path.strip():
        raise ValidationError("input path is required")
    out = io.output_path.strip()
    if not out and not io.in_place:
        raise ValidationError("either output path or in-place mode is required")
    if out and io.in_place:
        raise ValidationError("output path and in-place mode are mutually exclusive")


def _metadata_patch(patch: MetadataPatch, strict: bool) -> None:
    for f in DATE_FIELDS:
        value = patch.get(f)
        if value is None:
            continue
        if not value.strip():
            raise ValidationError(f"{f.value} must not be empty")
        if strict:
            date_string(value, f.value)


def show_request(request: ShowRequest) -> None:
    if not request.input_path.strip():
        raise ValidationError("input path is required")


def set_request(request: SetRequest) -> None:
    """Validates write destination and metadata changes."""
    _io_options(request.io)
    _metadata_patch(request.changes, request.strict)
    if not request.changes.has_any():
        raise ValidationError("at least one metadata field must be set")


def unset_request(request: UnsetRequest) -> None:
    """Validates write destination and unset field selection."""
    _io_options(request.io)
    if request.unset_all and request.fields:
        raise ValidationError("--all cannot be combined with explicit fields")
    if not request.unset_all and not request.fields:
        raise ValidationError("at least one field is required when --all is false")
    normalize_fields(request.fields)


def template_save_request(request: TemplateSaveRequest) -> None:
    if not request.name.strip():
        raise ValidationError("template name is required")
    _metadata_patch(request.metadata, False)
    if not request.metadata.has_any():
        raise ValidationError("template metadata must include at least one field")


def template_apply_request(request: TemplateApplyRequest) -> None:
    if not request.name.strip():
        raise ValidationError("template name is required")
    _io_options(request.io)
