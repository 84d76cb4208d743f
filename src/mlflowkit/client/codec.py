"""
Request and response shapes for the experiments REST endpoints.

Each request type serializes to the exact JSON object the server expects,
with keys in declaration order. Response decoders validate the shape and
raise DecodeError on anything unexpected.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..core.errors import DecodeError
from ..experiments.experiment import Experiment, Tags


# ============================================================
# Endpoints
# ============================================================

API_PREFIX = "/api/2.0/mlflow/experiments"

CREATE_PATH = f"{API_PREFIX}/create"
GET_PATH = f"{API_PREFIX}/get"
GET_BY_NAME_PATH = f"{API_PREFIX}/get-by-name"
UPDATE_PATH = f"{API_PREFIX}/update"
DELETE_PATH = f"{API_PREFIX}/delete"
SEARCH_PATH = f"{API_PREFIX}/search"


# ============================================================
# Encoding
# ============================================================

def encode_body(payload: Dict[str, Any]) -> bytes:
    """Compact UTF-8 JSON, newline-terminated."""
    text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def decode_body(content: bytes) -> Dict[str, Any]:
    if not content.strip():
        return {}
    try:
        data = json.loads(content)
    except ValueError as e:
        raise DecodeError(f"response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError(
            f"expected a JSON object, got {type(data).__name__}"
        )
    return data


# ============================================================
# Requests
# ============================================================

@dataclass
class CreateExperimentRequest:
    name: str
    artifact_location: str
    tags: Tags

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "artifact_location": self.artifact_location,
            "tags": self.tags.to_list(),
        }


@dataclass
class DeleteExperimentRequest:
    experiment_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"experiment_id": self.experiment_id}


@dataclass
class UpdateExperimentRequest:
    """Partial update; only mutable attributes are carried."""

    experiment_id: str
    new_name: str = ""
    tags: Tags = field(default_factory=Tags)
    lifecycle_stage: str = ""

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"experiment_id": self.experiment_id}
        if self.new_name:
            payload["new_name"] = self.new_name
        payload["tags"] = self.tags.to_list()
        if self.lifecycle_stage:
            payload["lifecycle_stage"] = getattr(
                self.lifecycle_stage, "value", self.lifecycle_stage
            )
        return payload


@dataclass
class SearchExperimentsRequest:
    filter: str
    max_results: int
    view_type: str = "ACTIVE_ONLY"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filter": self.filter,
            "max_results": self.max_results,
            "view_type": self.view_type,
        }


# ============================================================
# Responses
# ============================================================

def decode_create_response(data: Dict[str, Any]) -> str:
    experiment_id = data.get("experiment_id")
    if not experiment_id:
        raise DecodeError("create response is missing 'experiment_id'")
    return str(experiment_id)


def decode_experiment_response(data: Dict[str, Any]) -> Experiment:
    payload = data.get("experiment")
    if not isinstance(payload, dict):
        raise DecodeError("response is missing the 'experiment' object")
    return _decode_experiment(payload)


def decode_search_response(data: Dict[str, Any]) -> List[Experiment]:
    items: Optional[list] = data.get("experiments") or []
    if not isinstance(items, list):
        raise DecodeError("'experiments' must be a list")
    return [_decode_experiment(item) for item in items]


def _decode_experiment(payload: Any) -> Experiment:
    if not isinstance(payload, dict):
        raise DecodeError("experiment entry must be a JSON object")
    try:
        return Experiment.from_dict(payload)
    except (TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"malformed experiment: {e}") from e
