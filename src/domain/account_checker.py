"""
Per-account domain checks.

For every domain of a customer the checker returns the cached expiry date if
one is known, otherwise it asks the WHOIS gateway and stores the answer in
the cache. Failures are returned as CheckError values so one broken domain
never stops the rest of the account.
"""

import logging
from datetime import datetime
from typing import Any, Dict

from .cache import ExpiryCache
from .models import (
    DISABLED,
    CheckAccountResult,
    CheckError,
    CheckResult,
    CustomerAccount,
    DomainRecord,
    ErrorKind,
    ExpiryCheckError,
    ExpiryDate,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

# Probed in order, first present key wins
EXPIRY_FIELDS = ('paid-till', 'registry expiry date')


def extract_expiry_date(whois_kv: Dict[str, str]) -> datetime:
    """
    Extract the registration expiry date from WHOIS attributes.

    Args:
        whois_kv: WHOIS attribute name -> value mapping

    Returns:
        datetime: Expiry date in UTC

    Raises:
        ExpiryCheckError: MISSING_EXPIRY_FIELD if no known key is present,
            DATE_PARSE_FAILURE if the value is not a date-time

    Example:
        >>> extract_expiry_date({'paid-till': '2025-01-01T00:00:00Z'})
        datetime.datetime(2025, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    for key in EXPIRY_FIELDS:
        if key in whois_kv:
            return parse_timestamp(whois_kv[key])

    raise ExpiryCheckError(ErrorKind.MISSING_EXPIRY_FIELD, "Can't find whois field")


class AccountChecker:
    """
    Checks customer accounts against the expiry cache and WHOIS.

    The checker owns the cache for the duration of a run; the caller creates
    it, hands it over and persists it when the run is over.
    """

    def __init__(self, gateway: Any, cache: ExpiryCache):
        self.gateway = gateway
        self.cache = cache
        self.lookup_count = 0

    def check_account(self, customer: CustomerAccount) -> CheckAccountResult:
        """
        Check every domain of a customer.

        Args:
            customer: Customer account to check

        Returns:
            CheckAccountResult: One entry per domain (empty if the customer
            is disabled)
        """
        result = CheckAccountResult(customer_name=customer.name)
        if customer.disabled:
            logger.info(f"Account {customer.name} disabled, skipping check")
            return result

        for domain in customer.domains:
            result.add(domain, self.check_domain(domain))

        logger.info(
            f"Account {customer.name} checked: {len(result)} domain(s), "
            f"{result.error_count} error(s)"
        )
        return result

    def check_domain(self, domain: DomainRecord) -> CheckResult:
        """
        Check a single domain: cache first, WHOIS on a miss.

        Args:
            domain: Domain record to check

        Returns:
            CheckResult: ExpiryDate, DISABLED, or CheckError for this domain
        """
        if domain.disabled:
            logger.info(f"Domain {domain.domain} disabled, skipping check")
            return DISABLED

        cached = self.cache.get(domain.domain)
        if cached is not None:
            logger.debug(f"Domain {domain.domain}: expiry read from cache ({cached.isoformat()})")
            return ExpiryDate(cached)

        logger.info(f"Domain {domain.domain}: requesting expiry date from whois servers")
        self.lookup_count += 1
        try:
            whois_kv = self.gateway.get_whois_kv(domain.domain)
            expires_at = extract_expiry_date(whois_kv)
        except ExpiryCheckError as e:
            logger.error(f"Domain {domain.domain}: {e.kind.value}: {e.message}")
            return CheckError.from_exception(e)
        except Exception as e:
            logger.error(f"Domain {domain.domain}: whois lookup failed: {e}", exc_info=True)
            return CheckError(ErrorKind.LOOKUP_FAILURE, str(e) or type(e).__name__)

        self.cache.put(domain.domain, expires_at)
        logger.debug(f"Domain {domain.domain}: expires {expires_at.isoformat()}")
        return ExpiryDate(expires_at)
