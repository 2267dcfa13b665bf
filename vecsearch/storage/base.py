"""
Abstract base classes for the storage layer.
These define the contracts that the Redis-backed implementations follow.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional


class IConnection(ABC):
    """
    Abstract interface for a database connection.
    Only manages the connection lifecycle.
    """

    @abstractmethod
    def connect(self) -> None:
        """Establish the connection."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection."""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the connection is healthy."""
        pass

    @abstractmethod
    def get_client(self) -> Any:
        """Get the underlying client."""
        pass


class IDocumentStorage(ABC):
    """
    Abstract interface for writing and reading schema-shaped documents.
    Only handles document persistence; indexing is the search index's job.
    """

    @abstractmethod
    def key(self, id: str) -> str:
        """Full Redis key for a document id."""
        pass

    @abstractmethod
    def validate(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Check a document against the schema and return its storable form."""
        pass

    @abstractmethod
    def write(
        self,
        client: Any,
        documents: Iterable[Dict[str, Any]],
        id_field: Optional[str] = None,
        keys: Optional[List[str]] = None,
        ttl: Optional[int] = None,
        batch_size: Optional[int] = None
    ) -> List[str]:
        """Write documents and return the keys written."""
        pass

    @abstractmethod
    def get(self, client: Any, keys: List[str]) -> List[Optional[Dict[str, Any]]]:
        """Read documents by key; missing keys yield None."""
        pass
