"""
Venue adapters.

One adapter per venue, all implementing :class:`VenueAdapter`; build them
with :func:`get_venue`.
"""

from .base import VenueAdapter
from .registry import VENUES, find_venue, get_venue

__all__ = ["VenueAdapter", "VENUES", "find_venue", "get_venue"]
