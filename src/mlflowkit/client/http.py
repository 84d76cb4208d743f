"""
HTTP implementation of the experiment client.

Each operation is one blocking round trip through the injected
``httpx.Client`` (create and update add a follow-up read). Nothing is
retried; every failure is raised to the caller.

Namespaces are emulated on top of the server's flat name space: an
experiment "foo" in namespace "team-a" is stored as "team-a/foo" and
carries the tag ``metadata.namespace = team-a``.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Callable, Dict, List, Optional, Union

import httpx

from ..core.errors import ProtocolError, TransportError, ValidationError
from ..experiments.experiment import NAMESPACE_TAG, Experiment, Tags
from .base import (
    CreateOptions,
    DeleteOptions,
    ExperimentClient,
    GetOptions,
    ListOptions,
    resolve_namespace,
    validate_namespace,
)
from .codec import (
    CREATE_PATH,
    DELETE_PATH,
    GET_BY_NAME_PATH,
    GET_PATH,
    SEARCH_PATH,
    UPDATE_PATH,
    CreateExperimentRequest,
    DeleteExperimentRequest,
    SearchExperimentsRequest,
    UpdateExperimentRequest,
    decode_body,
    decode_create_response,
    decode_experiment_response,
    decode_search_response,
    encode_body,
)
from .config import ClientConfig, parse_base_url

logger = logging.getLogger(__name__)


Authenticator = Callable[[httpx.Request], None]

# Error code the tracking server puts in the body of a name collision.
ALREADY_EXISTS_MARKER = "RESOURCE_ALREADY_EXISTS"


def bearer_token_authenticator(token: str) -> Authenticator:
    """Authenticator that attaches ``Authorization: Bearer <token>``."""

    def authenticate(request: httpx.Request) -> None:
        request.headers["Authorization"] = f"Bearer {token}"

    return authenticate


def strip_namespace(experiment: Experiment) -> None:
    """Remove the "<namespace>/" prefix recorded by the experiment's own tag."""
    namespace = experiment.tags.get(NAMESPACE_TAG)
    if not namespace:
        return
    prefix = f"{namespace}/"
    if experiment.name.startswith(prefix):
        experiment.name = experiment.name[len(prefix):]


class Client(ExperimentClient):
    """
    Experiment client for the MLflow 2.0 REST API.

    Args:
        address: Base URL of the tracking server. A path component is kept
            and the API paths are joined beneath it.
        http_client: Transport used for every request. The caller owns it
            unless the client was built with ``from_config``.
        authenticator: Optional callable invoked with each fully built
            request before it is sent. It mutates the request in place.
    """

    def __init__(
        self,
        address: Union[str, httpx.URL],
        http_client: httpx.Client,
        authenticator: Optional[Authenticator] = None,
    ):
        self._address = parse_base_url(str(address))
        self._http = http_client
        self._authenticator = authenticator
        self._owns_transport = False

        logger.debug(f"Client initialized: address={self._address}")

    @classmethod
    def from_config(cls, config: ClientConfig) -> "Client":
        authenticator = bearer_token_authenticator(config.token) if config.token else None
        client = cls(
            config.tracking_uri,
            httpx.Client(timeout=config.timeout),
            authenticator=authenticator,
        )
        client._owns_transport = True
        return client

    @property
    def address(self) -> httpx.URL:
        return self._address

    def close(self) -> None:
        if self._owns_transport:
            self._http.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # --------------------------------------------------------
    # Request plumbing
    # --------------------------------------------------------

    def _url(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> httpx.URL:
        base_path = self._address.path or "/"
        path = posixpath.normpath(posixpath.join(base_path, endpoint.lstrip("/")))
        url = self._address.copy_with(path=path)
        if params:
            url = url.copy_merge_params(params)
        return url

    def _send(
        self,
        method: str,
        endpoint: str,
        *,
        stage: str,
        payload: Optional[dict] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        url = self._url(endpoint, params)

        headers = {"Accept": "application/json"}
        content = None
        if payload is not None:
            content = encode_body(payload)
            headers["Content-Type"] = "application/json"

        request = self._http.build_request(method, url, content=content, headers=headers)

        if self._authenticator is not None:
            self._authenticator(request)

        try:
            response = self._http.send(request)
        except httpx.HTTPError as e:
            raise TransportError(
                f"{method} {url} failed: {e}",
                url=str(url),
                stage=stage,
            ) from e

        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, stage: str) -> None:
        if response.status_code != httpx.codes.OK:
            raise ProtocolError(response.status_code, response.text, stage=stage)

    # ========================================================
    # Create
    # ========================================================

    def create_experiment(
        self,
        experiment: Experiment,
        options: Optional[CreateOptions] = None,
    ) -> None:
        if not experiment.name:
            raise ValidationError(
                'missing required attribute "name" on experiment',
                attribute="name",
                stage="create_experiment",
            )

        options = options or CreateOptions()
        namespace = resolve_namespace(options.namespace)

        tags = Tags(experiment.tags).deep_copy()
        tags.set(NAMESPACE_TAG, namespace)

        body = CreateExperimentRequest(
            name=f"{namespace}/{experiment.name}",
            artifact_location=experiment.artifact_location,
            tags=tags,
        )

        response = self._send("POST", CREATE_PATH, payload=body.to_dict(), stage="create_experiment")

        if response.status_code != httpx.codes.OK:
            if options.ignore_already_exists and ALREADY_EXISTS_MARKER in response.text:
                logger.info(
                    f"Experiment '{body.name}' already exists; loading existing experiment"
                )
                existing = self.get_experiment_by_name(
                    experiment.name, GetOptions(namespace=namespace)
                )
                existing.deep_copy_into(experiment)
                return
            raise ProtocolError(response.status_code, response.text, stage="create_experiment")

        experiment.experiment_id = decode_create_response(decode_body(response.content))
        logger.info(f"Created experiment '{body.name}' with id {experiment.experiment_id}")

        self.get_experiment(experiment, GetOptions(namespace=namespace))

    # ========================================================
    # Read
    # ========================================================

    def get_experiment(
        self,
        experiment: Experiment,
        options: Optional[GetOptions] = None,
    ) -> None:
        if not experiment.experiment_id:
            raise ValidationError(
                "experiment_id must be set",
                attribute="experiment_id",
                stage="get_experiment",
            )

        options = options or GetOptions()
        requested = resolve_namespace(options.namespace)

        response = self._send(
            "GET",
            GET_PATH,
            params={"experiment_id": experiment.experiment_id},
            stage="get_experiment",
        )
        self._raise_for_status(response, "get_experiment")

        result = decode_experiment_response(decode_body(response.content))

        # The stored tag decides which prefix is stripped, not the option.
        if result.namespace and result.namespace != requested:
            logger.debug(
                f"Experiment {result.experiment_id} is in namespace "
                f"'{result.namespace}', not '{requested}'"
            )
        strip_namespace(result)
        result.deep_copy_into(experiment)

    def get_experiment_by_name(
        self,
        name: str,
        options: Optional[GetOptions] = None,
    ) -> Experiment:
        if not name:
            raise ValidationError(
                "name must be set",
                attribute="name",
                stage="get_experiment_by_name",
            )

        options = options or GetOptions()
        namespace = resolve_namespace(options.namespace)

        response = self._send(
            "GET",
            GET_BY_NAME_PATH,
            params={"experiment_name": f"{namespace}/{name}"},
            stage="get_experiment_by_name",
        )
        self._raise_for_status(response, "get_experiment_by_name")

        result = decode_experiment_response(decode_body(response.content))
        strip_namespace(result)
        return result

    def list_experiments(self, options: Optional[ListOptions] = None) -> List[Experiment]:
        options = options or ListOptions()
        if options.max_results <= 0:
            raise ValidationError(
                "max_results must be positive",
                attribute="max_results",
                stage="list_experiments",
            )

        namespace = resolve_namespace(options.namespace)
        body = SearchExperimentsRequest(
            filter=f"tags.`{NAMESPACE_TAG}` = '{namespace}'",
            max_results=options.max_results,
            view_type="ALL" if options.include_deleted else "ACTIVE_ONLY",
        )

        response = self._send("POST", SEARCH_PATH, payload=body.to_dict(), stage="list_experiments")
        self._raise_for_status(response, "list_experiments")

        experiments = decode_search_response(decode_body(response.content))
        for experiment in experiments:
            strip_namespace(experiment)
        return experiments

    # ========================================================
    # Update
    # ========================================================

    def update_experiment(self, experiment: Experiment) -> None:
        """
        The namespace is never guessed for an existing ID: an untagged value
        adopts the namespace stored on the server, and an experiment the
        server holds without a namespace tag keeps its name unprefixed.
        """
        namespace = experiment.namespace
        if namespace:
            validate_namespace(namespace)

        if not experiment.experiment_id:
            if not experiment.name:
                raise ValidationError(
                    "experiment_id or name must be set",
                    attribute="experiment_id",
                    stage="update_experiment",
                )
            namespace = resolve_namespace(namespace)
            existing = self.get_experiment_by_name(
                experiment.name, GetOptions(namespace=namespace)
            )
            experiment.experiment_id = existing.experiment_id
        elif not namespace:
            stored = Experiment(experiment_id=experiment.experiment_id)
            self.get_experiment(stored)
            namespace = stored.namespace
            logger.debug(
                f"Experiment {experiment.experiment_id} has no local namespace tag; "
                f"using stored namespace '{namespace}'"
            )

        tags = Tags(experiment.tags).deep_copy()
        new_name = experiment.name
        if namespace:
            tags.set(NAMESPACE_TAG, namespace)
            if new_name:
                new_name = f"{namespace}/{new_name}"

        body = UpdateExperimentRequest(
            experiment_id=experiment.experiment_id,
            new_name=new_name,
            tags=tags,
            lifecycle_stage=experiment.lifecycle_stage,
        )

        response = self._send("POST", UPDATE_PATH, payload=body.to_dict(), stage="update_experiment")
        self._raise_for_status(response, "update_experiment")

        self.get_experiment(experiment)

    # ========================================================
    # Delete
    # ========================================================

    def delete_experiment(
        self,
        experiment: Experiment,
        options: Optional[DeleteOptions] = None,
    ) -> None:
        if not experiment.experiment_id:
            raise ValidationError(
                "experiment_id must be set",
                attribute="experiment_id",
                stage="delete_experiment",
            )

        options = options or DeleteOptions()
        body = DeleteExperimentRequest(experiment_id=experiment.experiment_id)

        response = self._send("POST", DELETE_PATH, payload=body.to_dict(), stage="delete_experiment")

        if response.status_code == httpx.codes.NOT_FOUND and options.ignore_missing:
            logger.debug(f"Experiment {experiment.experiment_id} not found; ignoring")
        else:
            self._raise_for_status(response, "delete_experiment")

        Experiment().deep_copy_into(experiment)
