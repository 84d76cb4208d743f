"""
Shared pytest fixtures for mlflowkit tests.

FakeTrackingServer is an in-memory stand-in for the MLflow experiments
endpoints, served through httpx.MockTransport. Every request it sees is
recorded on ``server.requests``.
"""

import json
import re
from typing import Dict, List
from urllib.parse import parse_qs

import httpx
import pytest

from mlflowkit.client import Client


NAMESPACE_FILTER = re.compile(r"^tags\.`metadata\.namespace` = '(?P<ns>[^']*)'$")


def _error(status: int, code: str, message: str) -> httpx.Response:
    return httpx.Response(status, json={"error_code": code, "message": message})


class FakeTrackingServer:
    def __init__(self):
        self.experiments: Dict[str, dict] = {}
        self.requests: List[httpx.Request] = []
        self._next_id = 1
        self._clock = 1_700_000_000

    # --------------------------------------------------------
    # Helpers
    # --------------------------------------------------------

    def _tick(self) -> int:
        self._clock += 1
        return self._clock

    def _find_by_name(self, name: str):
        for exp in self.experiments.values():
            if exp["name"] == name:
                return exp
        return None

    def _missing(self, experiment_id) -> httpx.Response:
        return _error(404, "RESOURCE_DOES_NOT_EXIST", f"No Experiment with id={experiment_id} exists")

    @staticmethod
    def _upsert_tags(exp: dict, tags: list) -> None:
        for tag in tags or []:
            for existing in exp["tags"]:
                if existing["key"] == tag["key"]:
                    existing["value"] = tag["value"]
                    break
            else:
                exp["tags"].append({"key": tag["key"], "value": tag["value"]})

    # --------------------------------------------------------
    # Routing
    # --------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = request.url.path.rsplit("/", 1)[-1]

        if request.method == "GET":
            query = {k: v[0] for k, v in parse_qs(request.url.query.decode()).items()}
            if route == "get":
                return self._get(query.get("experiment_id", ""))
            if route == "get-by-name":
                return self._get_by_name(query.get("experiment_name", ""))
        elif request.method == "POST":
            body = json.loads(request.content) if request.content else {}
            if route == "create":
                return self._create(body)
            if route == "delete":
                return self._delete(body)
            if route == "update":
                return self._update(body)
            if route == "search":
                return self._search(body)

        return _error(404, "ENDPOINT_NOT_FOUND", f"No route for {request.method} {request.url.path}")

    def _create(self, body: dict) -> httpx.Response:
        name = body.get("name") or ""
        if not name:
            return _error(400, "INVALID_PARAMETER_VALUE", "Missing value for required parameter 'name'")
        if self._find_by_name(name):
            return _error(400, "RESOURCE_ALREADY_EXISTS", f"Experiment '{name}' already exists.")

        experiment_id = str(self._next_id)
        self._next_id += 1
        now = self._tick()
        self.experiments[experiment_id] = {
            "experiment_id": experiment_id,
            "name": name,
            "artifact_location": body.get("artifact_location") or f"mlflow-artifacts:/{experiment_id}",
            "lifecycle_stage": "active",
            "creation_time": now,
            "last_updated_time": now,
            "tags": [dict(t) for t in body.get("tags") or []],
        }
        return httpx.Response(200, json={"experiment_id": experiment_id})

    def _get(self, experiment_id: str) -> httpx.Response:
        exp = self.experiments.get(experiment_id)
        if exp is None:
            return self._missing(experiment_id)
        return httpx.Response(200, json={"experiment": exp})

    def _get_by_name(self, name: str) -> httpx.Response:
        exp = self._find_by_name(name)
        if exp is None:
            return _error(404, "RESOURCE_DOES_NOT_EXIST", f"Could not find experiment with name '{name}'")
        return httpx.Response(200, json={"experiment": exp})

    def _delete(self, body: dict) -> httpx.Response:
        exp = self.experiments.get(body.get("experiment_id", ""))
        if exp is None or exp["lifecycle_stage"] == "deleted":
            return self._missing(body.get("experiment_id"))
        exp["lifecycle_stage"] = "deleted"
        exp["last_updated_time"] = self._tick()
        return httpx.Response(200, json={})

    def _update(self, body: dict) -> httpx.Response:
        exp = self.experiments.get(body.get("experiment_id", ""))
        if exp is None:
            return self._missing(body.get("experiment_id"))

        new_name = body.get("new_name")
        if new_name and new_name != exp["name"]:
            if self._find_by_name(new_name):
                return _error(400, "RESOURCE_ALREADY_EXISTS", f"Experiment '{new_name}' already exists.")
            exp["name"] = new_name

        self._upsert_tags(exp, body.get("tags"))
        if body.get("lifecycle_stage"):
            exp["lifecycle_stage"] = body["lifecycle_stage"]
        exp["last_updated_time"] = self._tick()
        return httpx.Response(200, json={})

    def _search(self, body: dict) -> httpx.Response:
        match = NAMESPACE_FILTER.match(body.get("filter", ""))
        namespace = match.group("ns") if match else None
        include_deleted = body.get("view_type") == "ALL"

        results = []
        for exp in self.experiments.values():
            if not include_deleted and exp["lifecycle_stage"] != "active":
                continue
            tags = {t["key"]: t["value"] for t in exp["tags"]}
            if namespace is not None and tags.get("metadata.namespace") != namespace:
                continue
            results.append(exp)

        return httpx.Response(200, json={"experiments": results[: body.get("max_results", 1000)]})


@pytest.fixture
def server() -> FakeTrackingServer:
    return FakeTrackingServer()


@pytest.fixture
def http_client(server):
    with httpx.Client(transport=httpx.MockTransport(server.handler)) as http:
        yield http


@pytest.fixture
def client(http_client) -> Client:
    return Client("http://tracking.test", http_client)
