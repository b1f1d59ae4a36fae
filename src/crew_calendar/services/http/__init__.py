"""HTTP services for Crew Calendar."""

from .server import app, get_context, run_local_server

__all__ = [
    "app",
    "get_context",
    "run_local_server",
]
