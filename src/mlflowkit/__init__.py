"""
mlflowkit - Typed client for the MLflow experiments REST API with namespace emulation.
"""

__version__ = "0.1.0"

# Lazy imports - keep `import mlflowkit` free of httpx/yaml until needed
def __getattr__(name):
    if name == "Client":
        from .client.http import Client
        return Client
    elif name == "ClientConfig":
        from .client.config import ClientConfig
        return ClientConfig
    elif name in ("Experiment", "Tag", "Tags", "LifecycleStage"):
        from .experiments import experiment
        return getattr(experiment, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = ["__version__"]
