from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from ..core.errors import ValidationError
from ..experiments.experiment import DEFAULT_NAMESPACE, Experiment


# ============================================================
# Operation Options
# ============================================================

@dataclass
class CreateOptions:
    """
    namespace:
        Target namespace. The server has no native namespaces, so the
        experiment is stored as "<namespace>/<name>" and tagged with
        ``metadata.namespace``. Empty means "default".
    ignore_already_exists:
        Treat a name collision as success and load the existing experiment.
    """

    namespace: str = DEFAULT_NAMESPACE
    ignore_already_exists: bool = False


@dataclass
class GetOptions:
    """
    namespace:
        Used only for name-based lookups. Lookups by ID ignore it and strip
        the prefix recorded in the experiment's own namespace tag.
    """

    namespace: str = DEFAULT_NAMESPACE


@dataclass
class DeleteOptions:
    """
    ignore_missing:
        A 404 from the server counts as success, for idempotent deletes.
    """

    ignore_missing: bool = False


@dataclass
class ListOptions:
    namespace: str = DEFAULT_NAMESPACE
    max_results: int = 1000
    include_deleted: bool = False


# "/" separates namespace from name; quotes would break the search filter.
_FORBIDDEN_NAMESPACE_CHARS = ("/", "'", '"', "`")


def validate_namespace(namespace: str) -> str:
    if not isinstance(namespace, str) or not namespace.strip():
        raise ValidationError("Namespace must be non-empty.", attribute="namespace")

    for char in _FORBIDDEN_NAMESPACE_CHARS:
        if char in namespace:
            raise ValidationError(
                f"Namespace cannot contain {char!r}, got {namespace!r}",
                attribute="namespace",
            )
    return namespace


def resolve_namespace(namespace: Optional[str]) -> str:
    """Empty means the default namespace; anything else must be valid."""
    return validate_namespace(namespace or DEFAULT_NAMESPACE)


# ============================================================
# Client Contract
# ============================================================

class ExperimentClient(ABC):
    """
    Experiment CRUD against a tracking server.

    Every operation takes the caller's Experiment and writes server state
    back into it in place.
    """

    @abstractmethod
    def create_experiment(
        self,
        experiment: Experiment,
        options: Optional[CreateOptions] = None,
    ) -> None:
        """
        Create a new experiment and populate all computed fields.

        Raises:
            ValidationError: name is empty
            ProtocolError: the server rejected the request (including name
                collisions unless ignore_already_exists is set)
        """
        raise NotImplementedError

    @abstractmethod
    def get_experiment(
        self,
        experiment: Experiment,
        options: Optional[GetOptions] = None,
    ) -> None:
        """
        Load the experiment identified by experiment_id.

        Raises:
            ValidationError: experiment_id is empty
            ProtocolError
        """
        raise NotImplementedError

    @abstractmethod
    def get_experiment_by_name(
        self,
        name: str,
        options: Optional[GetOptions] = None,
    ) -> Experiment:
        raise NotImplementedError

    @abstractmethod
    def update_experiment(self, experiment: Experiment) -> None:
        """
        Update name, tags and lifecycle stage. The target is resolved by
        experiment_id when set, otherwise by name. All other fields are
        left untouched on the server.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_experiment(
        self,
        experiment: Experiment,
        options: Optional[DeleteOptions] = None,
    ) -> None:
        """
        Delete the experiment and reset the caller's value to Experiment().

        Raises:
            ValidationError: experiment_id is empty
            ProtocolError: including 404 unless ignore_missing is set
        """
        raise NotImplementedError

    @abstractmethod
    def list_experiments(
        self,
        options: Optional[ListOptions] = None,
    ) -> List[Experiment]:
        """Single page of experiments in one namespace."""
        raise NotImplementedError
