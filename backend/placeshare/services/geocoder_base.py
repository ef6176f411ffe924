"""
PlaceShare Backend: Abstract Geocoder Interface
=================================================

What:  Abstract base class for address → coordinates resolution.
How:   Concrete implementations inherit from Geocoder and implement
       resolve() and health_check().
Who:   Called by PlaceService.create before a place is persisted.

Implementations:
    - GoogleGeocoder: Google Maps Geocoding API (default)
    - Test doubles in tests/conftest.py
"""

from abc import ABC, abstractmethod
from typing import NamedTuple


class Coordinates(NamedTuple):
    """A resolved location in decimal degrees."""
    lat: float
    lng: float


class Geocoder(ABC):
    """
    Contract:
        - resolve() returns Coordinates for a postal address
        - every failure (unknown address, upstream outage, missing
          configuration) is reported as GeocodeError
        - implementations handle their own retry logic
    """

    @abstractmethod
    async def resolve(self, address: str) -> Coordinates:
        """
        Resolve a postal address to coordinates.

        Args:
            address: Free-form address as submitted by the user.

        Returns:
            Coordinates of the best match.

        Raises:
            GeocodeError: The address could not be resolved.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Report whether the geocoder can be used at all.

        Must not spend API quota. Returns False instead of raising.
        """
        ...
