"""
mlflowkit Error System

Design goals:
- Single canonical error code namespace (E#### format only)
- Explicit category per error (not prefix-derived)
- Stable exit codes for CLI integration
- Deterministic fingerprinting (not message-based)
- Protocol errors keep the raw status code and response body
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------
# Exit Codes (Process-Level Contract)
# ---------------------------------------------------------------------

class ExitCode(int, Enum):
    """
    Stable process exit codes.
    These values are part of the public CLI contract.
    """
    OK = 0

    VALIDATION_ERROR = 2
    TRANSPORT_ERROR = 10
    PROTOCOL_ERROR = 11
    DECODE_ERROR = 12
    CONFIG_ERROR = 13

    INTERNAL_ERROR = 99


# ---------------------------------------------------------------------
# Error Categories (Explicit, Not Derived)
# ---------------------------------------------------------------------

class ErrorCategory(str, Enum):
    USER = "user_error"
    TRANSPORT = "transport_error"
    PROTOCOL = "protocol_error"
    CONFIG = "config_error"
    INTERNAL = "internal_error"


# ---------------------------------------------------------------------
# Canonical Error Codes (Single Namespace)
# ---------------------------------------------------------------------

class ErrorCode(str, Enum):
    # 1xxx – User / Input
    MISSING_ATTRIBUTE = "E1001"

    # 2xxx – Transport
    REQUEST_FAILED = "E2001"

    # 3xxx – Protocol
    UNEXPECTED_STATUS = "E3001"
    MALFORMED_RESPONSE = "E3002"

    # 4xxx – Configuration
    INVALID_CONFIG = "E4001"

    # 9xxx – Internal
    INTERNAL_ERROR = "E9001"


# ---------------------------------------------------------------------
# Deterministic Fingerprint
# ---------------------------------------------------------------------

def compute_fingerprint(
    *,
    error_code: ErrorCode,
    stage: Optional[str],
    signature: Optional[str],
) -> str:
    """
    Deterministic fingerprint derived from:
    - error_code
    - stage (the client operation, e.g. "create_experiment")
    - optional structural signature (e.g., HTTP status code)

    Message text is NOT included.
    """
    payload = f"{error_code.value}|{stage or ''}|{signature or ''}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


# ---------------------------------------------------------------------
# Base Error
# ---------------------------------------------------------------------

@dataclass(eq=False)
class MLFlowKitError(Exception):
    """
    Base class for all mlflowkit errors.

    Invariants:
    - error_code is immutable
    - category is explicit
    - exit_code is explicit
    """

    message: str
    error_code: ErrorCode
    category: ErrorCategory
    exit_code: ExitCode
    stage: Optional[str] = None
    context: Optional[Dict[str, Any]] = None
    details: Optional[Dict[str, Any]] = None
    signature: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.error_code, ErrorCode):
            raise TypeError("error_code must be an ErrorCode enum")

        if not isinstance(self.category, ErrorCategory):
            raise TypeError("category must be an ErrorCategory enum")

        if not isinstance(self.exit_code, ExitCode):
            raise TypeError("exit_code must be an ExitCode enum")

        self.context = self.context or {}
        self.details = self.details or {}

        self.fingerprint = compute_fingerprint(
            error_code=self.error_code,
            stage=self.stage,
            signature=self.signature,
        )

        super().__init__(self.message)

    # -----------------------------------------------------------------
    # Structured Output
    # -----------------------------------------------------------------

    def to_json(self) -> Dict[str, Any]:
        """
        JSON-safe representation for CLI output.
        """
        return {
            "code": self.error_code.value,
            "category": self.category.value,
            "message": self.message,
            "stage": self.stage,
            "context": self.context,
            "details": self.details,
            "fingerprint": self.fingerprint,
        }

    def format(self) -> str:
        """
        Plain multi-line representation.
        """
        lines = [
            f"{self.__class__.__name__}: {self.message}",
            f"  code: {self.error_code.value}",
            f"  category: {self.category.value}",
            f"  fingerprint: {self.fingerprint}",
        ]

        if self.stage:
            lines.append(f"  stage: {self.stage}")

        if self.context:
            lines.append("  context:")
            for k, v in self.context.items():
                lines.append(f"    {k}: {v}")

        if self.details:
            lines.append("  details:")
            for k, v in self.details.items():
                lines.append(f"    {k}: {v}")

        return "\n".join(lines)


# ---------------------------------------------------------------------
# Domain-Specific Errors
# ---------------------------------------------------------------------

class ValidationError(MLFlowKitError):
    """A required attribute is missing or a value is malformed. Raised before any I/O."""

    def __init__(self, message: str, attribute: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.MISSING_ATTRIBUTE,
            category=ErrorCategory.USER,
            exit_code=ExitCode.VALIDATION_ERROR,
            signature=attribute,
            context={"attribute": attribute} if attribute else None,
            **kwargs,
        )


class TransportError(MLFlowKitError):
    """The HTTP request could not be sent or no response arrived."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.REQUEST_FAILED,
            category=ErrorCategory.TRANSPORT,
            exit_code=ExitCode.TRANSPORT_ERROR,
            context={"url": url} if url else None,
            **kwargs,
        )


class ProtocolError(MLFlowKitError):
    """
    The server answered with a non-success status code.

    ``body`` holds the raw response text; it is never parsed.
    """

    def __init__(self, status_code: int, body: str, **kwargs):
        self.status_code = status_code
        self.body = body
        super().__init__(
            message=f"unexpected status code {status_code}: {body}",
            error_code=ErrorCode.UNEXPECTED_STATUS,
            category=ErrorCategory.PROTOCOL,
            exit_code=ExitCode.PROTOCOL_ERROR,
            signature=str(status_code),
            context={"status_code": status_code},
            **kwargs,
        )


class DecodeError(MLFlowKitError):
    """The response body is not JSON of the expected shape."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.MALFORMED_RESPONSE,
            category=ErrorCategory.PROTOCOL,
            exit_code=ExitCode.DECODE_ERROR,
            **kwargs,
        )


class ConfigError(MLFlowKitError):
    """Configuration file missing, malformed, or with an unsupported schema."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_CONFIG,
            category=ErrorCategory.CONFIG,
            exit_code=ExitCode.CONFIG_ERROR,
            context={"path": path} if path else None,
            **kwargs,
        )


class InternalError(MLFlowKitError):
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code=ErrorCode.INTERNAL_ERROR,
            category=ErrorCategory.INTERNAL,
            exit_code=ExitCode.INTERNAL_ERROR,
            **kwargs,
        )


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

__all__ = [
    "ExitCode",
    "ErrorCategory",
    "ErrorCode",
    "MLFlowKitError",
    "ValidationError",
    "TransportError",
    "ProtocolError",
    "DecodeError",
    "ConfigError",
    "InternalError",
]
