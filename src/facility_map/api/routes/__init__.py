"""Route group exports."""

from . import facilities, health, sessions

__all__ = ["facilities", "health", "sessions"]
