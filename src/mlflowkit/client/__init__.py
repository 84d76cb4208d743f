"""
Tracking server client.
"""

from .base import (
    ExperimentClient,
    CreateOptions,
    GetOptions,
    DeleteOptions,
    ListOptions,
)
from .config import ClientConfig, ClientConfigSchema
from .http import Client, Authenticator, bearer_token_authenticator

__all__ = [
    # Client
    "ExperimentClient",
    "Client",
    "Authenticator",
    "bearer_token_authenticator",

    # Options
    "CreateOptions",
    "GetOptions",
    "DeleteOptions",
    "ListOptions",

    # Config
    "ClientConfig",
    "ClientConfigSchema",
]
