"""FastAPI routers acting as controllers in the MVC architecture."""

from . import profile, tts, usage

__all__ = ["profile", "tts", "usage"]
