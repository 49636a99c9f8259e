"""wakeclip - generate and cache spoken wake-up clips."""

__version__ = "0.1.0"
__all__ = ["create_pipeline"]


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    if name == "create_pipeline":
        from .api import create_pipeline

        return create_pipeline
    raise AttributeError(f"module 'wakeclip' has no attribute {name!r}")
