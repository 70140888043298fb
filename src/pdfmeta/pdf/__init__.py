# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Raw PDF envelope parsing and incremental metadata updates."""

from .document import PDFDocument
from .reader import NativeMetadata, read_native_metadata
from .writer import write_incremental

__all__ = [
    "PDFDocument",
    "NativeMetadata",
    "read_native_metadata",
    "write_incremental",
]
