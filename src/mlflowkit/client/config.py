"""
Client configuration.

Design goals:
- Strong typing
- Strict validation
- Atomic writes
- Schema versioning
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import httpx
import yaml

from ..core.errors import ConfigError, ValidationError
from ..experiments.experiment import DEFAULT_NAMESPACE
from .base import validate_namespace


DEFAULT_TRACKING_URI = "http://localhost:5000"
DEFAULT_TIMEOUT = 30.0


def parse_base_url(value: str) -> httpx.URL:
    """
    Parse a tracking server address.

    Raises ValidationError instead of failing later at request time.
    """
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError) as e:
        raise ValidationError(f"Invalid tracking URI {value!r}: {e}", attribute="tracking_uri") from e

    if url.scheme not in ("http", "https") or not url.host:
        raise ValidationError(
            f"Tracking URI must be an absolute http(s) URL, got {value!r}",
            attribute="tracking_uri",
        )
    return url


# ================================
# Domain Model
# ================================


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable, validated client configuration.
    """

    tracking_uri: str = DEFAULT_TRACKING_URI
    namespace: str = DEFAULT_NAMESPACE
    timeout: float = DEFAULT_TIMEOUT
    token: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.tracking_uri, str):
            raise ValidationError(
                f"Tracking URI must be a string, got {type(self.tracking_uri).__name__}",
                attribute="tracking_uri",
            )
        object.__setattr__(self, "tracking_uri", self.tracking_uri.strip())
        self._validate()

    def _validate(self) -> None:
        parse_base_url(self.tracking_uri)

        validate_namespace(self.namespace)

        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            raise ValidationError("Timeout must be a number.", attribute="timeout")

        if self.timeout <= 0:
            raise ValidationError("Timeout must be positive.", attribute="timeout")

    # ----------------------------
    # Persistence
    # ----------------------------

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ClientConfig":
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}", path=str(path))

        try:
            raw = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise ConfigError("Malformed YAML configuration.", path=str(path)) from e
        except OSError as e:
            raise ConfigError("Failed to read configuration file.", path=str(path)) from e

        return ClientConfigSchema.load(raw)

    def save(self, path: Union[str, Path]) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = ClientConfigSchema.dump(self)

        tmp_fd, tmp_path = tempfile.mkstemp(dir=path.parent)
        try:
            with os.fdopen(tmp_fd, "w") as tmp_file:
                yaml.safe_dump(data, tmp_file, sort_keys=False)
            os.replace(tmp_path, path)
        except Exception:
            os.unlink(tmp_path)
            raise

    def with_overrides(self, **overrides) -> "ClientConfig":
        values = {k: v for k, v in overrides.items() if v is not None}
        return ClientConfig(**{**self.__dict__, **values})


# ================================
# Serialization Layer
# ================================


class ClientConfigSchema:
    """
    Responsible ONLY for (de)serialization.
    """

    VERSION = 1

    @classmethod
    def load(cls, raw) -> ClientConfig:
        if not raw:
            return ClientConfig()

        if not isinstance(raw, dict):
            raise ConfigError("Configuration root must be a mapping.")

        version = raw.get("version")
        if version != cls.VERSION:
            raise ConfigError(
                f"Unsupported config version: {version}. "
                f"Expected version {cls.VERSION}."
            )

        tracking_uri = raw.get("tracking_uri", DEFAULT_TRACKING_URI)
        namespace = raw.get("namespace", DEFAULT_NAMESPACE)
        timeout = raw.get("timeout", DEFAULT_TIMEOUT)
        token = raw.get("token")

        for key, value in (("tracking_uri", tracking_uri), ("namespace", namespace)):
            if not isinstance(value, str):
                raise ConfigError(f"{key} must be a string, got {type(value).__name__}.")

        if token is not None and not isinstance(token, str):
            raise ConfigError(f"token must be a string, got {type(token).__name__}.")

        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ConfigError(f"timeout must be a number, got {timeout!r}.")

        return ClientConfig(
            tracking_uri=tracking_uri,
            namespace=namespace,
            timeout=float(timeout),
            token=token,
        )

    @classmethod
    def dump(cls, config: ClientConfig) -> dict:
        data = {
            "version": cls.VERSION,
            "tracking_uri": config.tracking_uri,
            "namespace": config.namespace,
            "timeout": config.timeout,
        }
        if config.token:
            data["token"] = config.token
        return data
