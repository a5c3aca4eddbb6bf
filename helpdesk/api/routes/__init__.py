"""Route modules exposed by the API package."""

from . import declines, ping, tickets

__all__ = ["declines", "ping", "tickets"]
