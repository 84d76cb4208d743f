"""
Core error types for mlflowkit.
"""

from .errors import (
    ExitCode,
    ErrorCategory,
    ErrorCode,
    MLFlowKitError,
    ValidationError,
    TransportError,
    ProtocolError,
    DecodeError,
    ConfigError,
    InternalError,
)

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
