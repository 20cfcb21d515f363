"""Directory client contract and Microsoft Graph adapter."""

from infrastructure.clients.directory.contracts import DirectoryClient, DirectoryUser
from infrastructure.clients.directory.graph import GraphDirectoryClient

__all__ = ["DirectoryClient", "DirectoryUser", "GraphDirectoryClient"]
