"""
WHOIS lookup gateway.

Fetches the raw WHOIS record of a domain with python-whois and turns it into
a flat attribute mapping. Keys are lower-cased so "Registry Expiry Date" and
"paid-till" can be probed the same way for every registry.

Usage:
    from integrations.whois_gateway import WhoisGateway

    kv = WhoisGateway().get_whois_kv("example.com")
    print(kv.get("registry expiry date"))
"""

import logging
import os
from typing import Dict, Optional

import whois

from domain.models import ErrorKind, ExpiryCheckError

logger = logging.getLogger(__name__)

# Socket timeout for whois servers, seconds
WHOIS_TIMEOUT_SECONDS = float(os.environ.get('WHOIS_TIMEOUT_SECONDS', '30'))

COMMENT_PREFIXES = ('%', '#', '>>>')


def parse_whois_text(text: str) -> Dict[str, str]:
    """
    Parse a raw WHOIS response into key/value pairs.

    Args:
        text: Raw WHOIS response

    Returns:
        Dict of lower-cased attribute names to values. The first occurrence
        of a key wins; comment lines and lines without a value are skipped.

    Example:
        >>> parse_whois_text("Registry Expiry Date: 2026-08-13T04:00:00Z")
        {'registry expiry date': '2026-08-13T04:00:00Z'}
    """
    result: Dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(COMMENT_PREFIXES):
            continue

        key, sep, value = line.partition(':')
        key = key.strip().lower()
        value = value.strip()
        if not sep or not key or not value:
            continue

        result.setdefault(key, value)
    return result


class WhoisGateway:
    """Blocking WHOIS client returning attribute mappings."""

    def __init__(self, client: Optional[whois.NICClient] = None, timeout: Optional[float] = WHOIS_TIMEOUT_SECONDS):
        self.client = client or whois.NICClient()
        self.timeout = timeout

    def get_whois_kv(self, domain: str) -> Dict[str, str]:
        """
        Look up a domain and return its WHOIS attributes.

        Args:
            domain: Domain name

        Returns:
            Dict of lower-cased attribute names to values

        Raises:
            ExpiryCheckError: LOOKUP_FAILURE if the query fails or the
                response is empty
        """
        try:
            query = domain.encode('idna').decode('ascii')
            # NICClient returns "Socket not responding: ..." as the response
            # text unless socket errors are raised
            text = self.client.whois_lookup(
                None, query, 0,
                ignore_socket_errors=False,
                timeout=self.timeout
            )
        except Exception as e:
            logger.error(f"Whois lookup for {domain} failed: {e}")
            raise ExpiryCheckError(ErrorKind.LOOKUP_FAILURE, f"Whois lookup failed: {e}")

        if not text or not text.strip():
            raise ExpiryCheckError(ErrorKind.LOOKUP_FAILURE, f"Empty whois response for {domain}")

        kv = parse_whois_text(text)
        logger.debug(f"Whois for {domain}: {len(kv)} attribute(s)")
        return kv
