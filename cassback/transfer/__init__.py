# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Streaming Transfer - Bounded-memory compression, upload and restore.
"""

from cassback.transfer.pipe import (
    BoundedPipe,
    run_stages,
)

from cassback.transfer.compressor import (
    StreamCompressor,
    StreamDecompressor,
    detect_compression,
)

from cassback.transfer.upload import (
    upload_file,
    upload_files,
)

from cassback.transfer.download import (
    download_object,
    download_objects,
)

__all__ = [
    # Pipe
    "BoundedPipe",
    "run_stages",
    # Compressor
    "StreamCompressor",
    "StreamDecompressor",
    "detect_compression",
    # Upload
    "upload_file",
    "upload_files",
    # Download
    "download_object",
    "download_objects",
]
