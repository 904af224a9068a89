"""
Expiry date cache.

Maps domain names to their known expiry timestamps so that domains whose
expiry is far away are not queried on every run. ``clean`` drops entries that
are expired or close to expiry, which forces a fresh lookup exactly when the
data matters most.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterator, Optional

from .models import (
    ErrorKind,
    ExpiryCheckError,
    days_until,
    format_timestamp,
    parse_timestamp,
)

logger = logging.getLogger(__name__)


class ExpiryCache:
    """In-memory domain -> expiry mapping with a serializable form."""

    def __init__(self, entries: Optional[Dict[str, datetime]] = None):
        self._entries: Dict[str, datetime] = dict(entries or {})

    def get(self, domain: str) -> Optional[datetime]:
        return self._entries.get(domain)

    def put(self, domain: str, expires_at: datetime) -> None:
        self._entries[domain] = expires_at

    def clean(self, now: datetime, threshold_days: int) -> int:
        """
        Evict entries expiring within ``threshold_days`` of ``now``.

        An entry is removed when ``days_until(expiry, now) <= threshold_days``.
        A negative threshold only removes entries already past expiry.

        Args:
            now: Current UTC time
            threshold_days: Eviction threshold in days (may be negative)

        Returns:
            int: Number of evicted entries
        """
        expired = [
            domain for domain, expires_at in self._entries.items()
            if days_until(expires_at, now) <= threshold_days
        ]
        for domain in expired:
            del self._entries[domain]

        if expired:
            logger.debug(f"Evicted {len(expired)} cache entries: {', '.join(sorted(expired))}")
        return len(expired)

    def serialize(self) -> Dict[str, str]:
        """Return the cache as domain -> timestamp text."""
        return {domain: format_timestamp(expires_at) for domain, expires_at in self._entries.items()}

    @classmethod
    def deserialize(cls, data: Any) -> 'ExpiryCache':
        """
        Build a cache from its serialized mapping.

        Args:
            data: Mapping of domain name -> timestamp text

        Returns:
            ExpiryCache: Cache holding every entry of ``data``

        Raises:
            ExpiryCheckError: CACHE_FORMAT_FAILURE if the payload is not a
                mapping or any timestamp is malformed
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ExpiryCheckError(
                ErrorKind.CACHE_FORMAT_FAILURE,
                f"Cache must be a mapping, got {type(data).__name__}"
            )

        entries = {}
        for domain, value in data.items():
            try:
                entries[str(domain)] = parse_timestamp(value)
            except ExpiryCheckError as e:
                raise ExpiryCheckError(
                    ErrorKind.CACHE_FORMAT_FAILURE,
                    f"Invalid cache entry for {domain}: {e.message}"
                )
        return cls(entries)

    def __contains__(self, domain: str) -> bool:
        return domain in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
