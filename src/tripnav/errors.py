# errors.py
# Exception types raised across the navigation core.

from typing import Optional


class TripNavError(Exception):
    """Base class for navigation core errors."""


class ProviderError(TripNavError):
    """A directions provider failed (network, quota, malformed response)."""

    def __init__(self, message: str, provider: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider

    def __str__(self) -> str:
        if self.provider:
            return f"{self.provider}: {self.message}"
        return self.message


class AssemblyError(TripNavError):
    """A route could not be assembled from the given waypoints."""
