# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Cassback Exceptions - Custom exceptions for the cassback package.
"""


class CassbackError(Exception):
    """Base exception for all cassback errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(CassbackError):
    """Raised when configuration is invalid or the data root is unreadable."""

    pass


class ExternalToolError(CassbackError):
    """Raised when the external snapshot tool fails."""

    pass


class TransferError(CassbackError):
    """Raised when a single file or object transfer fails."""

    pass


class KeyFormatError(TransferError):
    """Raised when an object key cannot be mapped to a local path."""

    pass
