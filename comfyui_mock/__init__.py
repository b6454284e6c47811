"""ComfyUI Mock - simulated prompt queue API."""

__version__ = "0.1.0"
