"""Output artifact storage."""

from .outputs import OutputStorage, build_outputs

__all__ = ["OutputStorage", "build_outputs"]
