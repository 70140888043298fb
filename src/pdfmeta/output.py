# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Text and JSON rendering of results and errors."""

import json
from typing import Any

from .exceptions import BatchFailedError, ErrorCode, PDFMetaError
from .model import ALL_FIELDS, BatchResult, ShowResult, TemplateRecord


def error_code(exc: BaseException) -> ErrorCode:
    if isinstance(exc, PDFMetaError):
        return exc.code
    return ErrorCode.UNKNOWN


def _lines(lines: list[str]) -> str:
    return "\n".join(lines) + "\n"


def _bool(value: bool) -> str:
    return "true" if value else "false"


class TextFormatter:
    """Human-readable output."""

    def show(self, result: ShowResult) -> str:
        lines = [
            f"Input: {result.input_path}",
            f"Encrypted: {_bool(result.encrypted)}",
            f"InfoPresent: {_bool(result.info_found)}",
            f"XMPPresent: {_bool(result.xmp_found)}",
            f"Normalized: {_bool(result.normalized)}",
            "Metadata:",
        ]
        lines.extend(f"  {f.label}: {result.metadata.get(f)}" for f in ALL_FIELDS)
        return _lines(lines)

    def batch(self, result: BatchResult) -> str:
        lines = [
            f"Total: {result.total}",
            f"Succeeded: {result.succeeded}",
            f"Failed: {result.failed}",
            "Items:",
        ]
        for item in result.items:
            line = f"  - {item.input_path} [{item.status}]"
            if item.error:
                line += f": {item.error}"
            if item.output_path:
                line += f" -> {item.output_path}"
            lines.append(line)
        return _lines(lines)

    def template(self, record: TemplateRecord) -> str:
        lines = [f"Name: {record.name}", f"Note: {record.note}", "Metadata:"]
        for f in ALL_FIELDS:
            value = record.metadata.get(f)
            if value is not None:
                lines.append(f"  {f.label}: {value}")
        return _lines(lines)

    def template_list(self, records: list[TemplateRecord]) -> str:
        if not records:
            return "No templates found\n"
        return _lines([f"{r.name}\t{r.note}" for r in records])

    def error(self, exc: BaseException) -> str:
        return f"error[{error_code(exc).value}]: {exc}\n"


class JSONFormatter:
    """Machine-readable output: two-space indented JSON plus a newline."""

    @staticmethod
    def _dump(payload: Any) -> str:
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

    def show(self, result: ShowResult) -> str:
        return self._dump(result.to_dict())

    def batch(self, result: BatchResult) -> str:
        return self._dump(result.to_dict())

    def batch_failure(self, exc: BatchFailedError) -> str:
        """Renders the batch result with the error and code keys added."""
        payload = exc.result.to_dict()
        payload.update(error=str(exc), code=error_code(exc).value)
        return self._dump(payload)

    def template(self, record: TemplateRecord) -> str:
        return self._dump(record.to_dict())

    def template_list(self, records: list[TemplateRecord]) -> str:
        return self._dump([r.to_dict() for r in records])

    def error(self, exc: BaseException) -> str:
        return self._dump({"error": str(exc), "code": error_code(exc).value})


def get_formatter(as_json: bool) -> TextFormatter | JSONFormatter:
    """Returns the formatter selected by the ``--json`` flag."""
    return JSONFormatter() if as_json else TextFormatter()
