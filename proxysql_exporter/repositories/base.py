"""
Abstract base class for repository pattern implementation.
"""
from abc import ABC, abstractmethod
from typing import Any


class AbstractRepository(ABC):
    """Base interface for the admin interface connection"""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the admin interface"""
        raise NotImplementedError("Subclass must implement connect()")

    @abstractmethod
    def ensure_connected(self) -> None:
        """Reuse a live connection or open a new one"""
        raise NotImplementedError("Subclass must implement ensure_connected()")

    @abstractmethod
    def query(self, sql: str) -> Any:
        """Execute a read-only statement and return its full result"""
        raise NotImplementedError("Subclass must implement query()")

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the connection is healthy"""
        raise NotImplementedError("Subclass must implement health_check()")

    @abstractmethod
    def close(self) -> None:
        """Close the connection"""
        raise NotImplementedError("Subclass must implement close()")
