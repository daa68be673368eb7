"""
HTTP clients for remote option lists and navigation persistence.
"""

from formdesign.clients.http_client import PersistenceClient, RemoteClient

__all__ = ["RemoteClient", "PersistenceClient"]
