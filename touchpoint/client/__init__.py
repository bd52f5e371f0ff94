"""Client for the remote context backend."""

from touchpoint.client.client import BackendClient

__all__ = ["BackendClient"]
