"""HTTP reporting surface for the external health monitor."""

from .health import router

__all__ = ["router"]
