"""
Experiment and Tag domain models.

An Experiment is a named collection of runs tracked on the remote server.
All server-computed fields are written back by the client; nothing here
performs validation or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


# ============================================================
# Constants
# ============================================================

NAMESPACE_TAG = "metadata.namespace"
DEFAULT_NAMESPACE = "default"


# ============================================================
# Enums
# ============================================================

class LifecycleStage(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"


# ============================================================
# Tags
# ============================================================

@dataclass
class Tag:
    """
    Key-value pair associated with an experiment.

    Tags order by key only, so ``sorted(tags)`` is a stable sort by key.
    """
    key: str
    value: str

    def __lt__(self, other: "Tag") -> bool:
        if not isinstance(other, Tag):
            return NotImplemented
        return self.key < other.key

    def to_dict(self) -> Dict[str, str]:
        return {"key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tag":
        return cls(key=data.get("key") or "", value=data.get("value") or "")


class Tags(list):
    """
    Ordered list of tags.

    Keys are unique only when written through ``set``; appending directly
    can introduce duplicates, in which case lookups see the first match.
    """

    def contains(self, key: str) -> bool:
        for tag in self:
            if tag.key == key:
                return True
        return False

    def get(self, key: str) -> str:
        """Value of the first tag with ``key``, or "" when absent."""
        for tag in self:
            if tag.key == key:
                return tag.value
        return ""

    def set(self, key: str, value: str) -> None:
        """Replace the first tag with ``key`` or append a new one."""
        for tag in self:
            if tag.key == key:
                tag.value = value
                return
        self.append(Tag(key=key, value=value))

    def deep_copy(self) -> "Tags":
        return Tags(Tag(key=t.key, value=t.value) for t in self)

    def to_list(self) -> List[Dict[str, str]]:
        return [t.to_dict() for t in self]

    @classmethod
    def from_list(cls, items: Optional[Iterable[Dict[str, Any]]]) -> "Tags":
        return cls(Tag.from_dict(item) for item in items or [])


# ============================================================
# Timestamp helpers
# ============================================================

def _from_epoch_seconds(value: int) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        # Outside the range datetime can represent.
        return None


def _to_epoch_seconds(value: Optional[datetime]) -> int:
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


# ============================================================
# Experiment Model
# ============================================================

@dataclass
class Experiment:
    """
    Experiment resource.

    Field notes:
    - experiment_id is assigned by the server and must not be set on create.
    - name must be set on create; it is stored without its namespace prefix.
    - artifact_location is chosen at creation and treated as immutable.
    - creation_time / last_updated_time are server epoch values, kept
      exactly as received. The ``*_timestamp`` properties read them as
      seconds since the epoch and give None for zero or out-of-range values.
    - lifecycle_stage is "" until read from the server.
    """

    experiment_id: str = ""
    name: str = ""
    artifact_location: str = ""
    creation_time: int = 0
    last_updated_time: int = 0
    lifecycle_stage: str = ""
    tags: Tags = field(default_factory=Tags)

    # --------------------------------------------------------
    # Copying
    # --------------------------------------------------------

    def deep_copy(self) -> "Experiment":
        out = Experiment()
        self.deep_copy_into(out)
        return out

    def deep_copy_into(self, out: "Experiment") -> None:
        """Overwrite every field of ``out`` with an independent copy of this one."""
        out.experiment_id = self.experiment_id
        out.name = self.name
        out.artifact_location = self.artifact_location
        out.creation_time = self.creation_time
        out.last_updated_time = self.last_updated_time
        out.lifecycle_stage = self.lifecycle_stage
        out.tags = Tags(self.tags).deep_copy()

    # --------------------------------------------------------
    # Derived accessors
    # --------------------------------------------------------

    @property
    def namespace(self) -> str:
        return self.tags.get(NAMESPACE_TAG)

    @namespace.setter
    def namespace(self, namespace: str) -> None:
        self.tags.set(NAMESPACE_TAG, namespace)

    @property
    def creation_timestamp(self) -> Optional[datetime]:
        return _from_epoch_seconds(self.creation_time)

    @creation_timestamp.setter
    def creation_timestamp(self, value: Optional[datetime]) -> None:
        self.creation_time = _to_epoch_seconds(value)

    @property
    def last_updated_timestamp(self) -> Optional[datetime]:
        return _from_epoch_seconds(self.last_updated_time)

    @last_updated_timestamp.setter
    def last_updated_timestamp(self, value: Optional[datetime]) -> None:
        self.last_updated_time = _to_epoch_seconds(value)

    def is_zero(self) -> bool:
        return self == Experiment()

    # --------------------------------------------------------
    # Wire representation
    # --------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """
        JSON shape used by the tracking server. Empty fields are omitted,
        except ``name`` which is always present.
        """
        payload: Dict[str, Any] = {}
        if self.experiment_id:
            payload["experiment_id"] = self.experiment_id
        payload["name"] = self.name
        if self.artifact_location:
            payload["artifact_location"] = self.artifact_location
        if self.creation_time:
            payload["creation_time"] = self.creation_time
        if self.last_updated_time:
            payload["last_updated_time"] = self.last_updated_time
        if self.lifecycle_stage:
            payload["lifecycle_stage"] = _stage_value(self.lifecycle_stage)
        if self.tags:
            payload["tags"] = self.tags.to_list()
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Experiment":
        return cls(
            experiment_id=str(data.get("experiment_id") or ""),
            name=data.get("name") or "",
            artifact_location=data.get("artifact_location") or "",
            creation_time=int(data.get("creation_time") or 0),
            last_updated_time=int(data.get("last_updated_time") or 0),
            lifecycle_stage=data.get("lifecycle_stage") or "",
            tags=Tags.from_list(data.get("tags")),
        )


def _stage_value(stage) -> str:
    return stage.value if isinstance(stage, LifecycleStage) else str(stage)
