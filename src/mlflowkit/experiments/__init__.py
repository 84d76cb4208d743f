"""
Experiment data model.
"""

from .experiment import (
    DEFAULT_NAMESPACE,
    NAMESPACE_TAG,
    Experiment,
    LifecycleStage,
    Tag,
    Tags,
)

__all__ = [
    "DEFAULT_NAMESPACE",
    "NAMESPACE_TAG",
    "Experiment",
    "LifecycleStage",
    "Tag",
    "Tags",
]
