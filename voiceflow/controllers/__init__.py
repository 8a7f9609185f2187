"""FastAPI routers acting as controllers in the MVC architecture."""

from . import queue, recordings

__all__ = ["queue", "recordings"]
