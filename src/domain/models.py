"""
Data models for domain expiry checking.

These type-safe data structures define clear contracts between components:
customer accounts read from configuration, per-domain check results and the
closed error taxonomy shared by every layer.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Union

logger = logging.getLogger(__name__)


# ============================================================================
# Errors
# ============================================================================

class ErrorKind(Enum):
    """Closed set of failure kinds a caller can branch on."""
    LOOKUP_FAILURE = 'lookup_failure'
    DATE_PARSE_FAILURE = 'date_parse_failure'
    MISSING_EXPIRY_FIELD = 'missing_expiry_field'
    CACHE_IO_FAILURE = 'cache_io_failure'
    CACHE_FORMAT_FAILURE = 'cache_format_failure'
    CONFIG_FAILURE = 'config_failure'
    CUSTOMERS_FAILURE = 'customers_failure'
    DELIVERY_FAILURE = 'delivery_failure'


class ExpiryCheckError(Exception):
    """Raised for every failure; ``kind`` tells which one."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"ExpiryCheckError(kind={self.kind.name}, message={self.message!r})"


# ============================================================================
# Timestamps
# ============================================================================

def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 date-time string into a UTC-aware datetime.

    Args:
        value: Date-time text such as "2025-01-01T00:00:00Z"

    Returns:
        datetime: Timezone-aware datetime converted to UTC

    Raises:
        ExpiryCheckError: DATE_PARSE_FAILURE if the value is not a date-time
            with an explicit offset
    """
    if not isinstance(value, str):
        raise ExpiryCheckError(
            ErrorKind.DATE_PARSE_FAILURE,
            f"Expected date-time string, got {type(value).__name__}"
        )

    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ExpiryCheckError(
            ErrorKind.DATE_PARSE_FAILURE,
            f"Can't parse date '{value}': {e}"
        )

    if parsed.tzinfo is None:
        raise ExpiryCheckError(
            ErrorKind.DATE_PARSE_FAILURE,
            f"Can't parse date '{value}': missing timezone offset"
        )

    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a datetime in the fixed text form used by the cache and reports."""
    return value.astimezone(timezone.utc).isoformat()


def days_until(expires_at: datetime, now: datetime) -> int:
    """Signed whole days in ``expires_at - now``, truncated toward zero."""
    return int((expires_at - now) / timedelta(days=1))


# ============================================================================
# Customer accounts
# ============================================================================

@dataclass
class DomainRecord:
    """
    One domain of a customer account.

    Attributes:
        domain: Domain name, also the cache key
        account: Registrar account label shown in reports
        autorenew: Whether the registration renews automatically
        disabled: Skip the check for this domain
    """
    domain: str
    account: str = ''
    autorenew: bool = False
    disabled: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DomainRecord':
        if not isinstance(data, dict):
            raise ValueError(f"Domain entry must be a mapping, got {type(data).__name__}")
        if not data.get('domain'):
            raise ValueError("Domain entry is missing 'domain'")

        return cls(
            domain=str(data['domain']),
            account=str(data.get('account') or ''),
            autorenew=bool(data.get('autorenew', False)),
            disabled=bool(data.get('disabled', False)),
        )


@dataclass
class CustomerAccount:
    """
    Customer account with its notification addresses and domains.

    Attributes:
        name: Unique customer identifier
        emails: Report recipients ("off:" prefixed addresses are skipped)
        domains: Domains in configuration order
        disabled: Skip the whole account
    """
    name: str
    emails: List[str] = field(default_factory=list)
    domains: List[DomainRecord] = field(default_factory=list)
    disabled: bool = False

    @property
    def all_domains_disabled(self) -> bool:
        """True when no domain of the account is checked."""
        return all(d.disabled for d in self.domains)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CustomerAccount':
        """
        Build a customer account from its YAML mapping.

        Raises:
            ValueError: If required fields are missing or have the wrong shape
        """
        if not isinstance(data, dict):
            raise ValueError(f"Customer entry must be a mapping, got {type(data).__name__}")
        if not data.get('name'):
            raise ValueError("Customer entry is missing 'name'")

        name = str(data['name'])
        emails = data.get('emails')
        domains = data.get('domains')
        if not isinstance(emails, list):
            raise ValueError(f"Customer '{name}': 'emails' must be a list")
        if not isinstance(domains, list):
            raise ValueError(f"Customer '{name}': 'domains' must be a list")

        return cls(
            name=name,
            emails=[str(e) for e in emails],
            domains=[DomainRecord.from_dict(d) for d in domains],
            disabled=bool(data.get('disabled', False)),
        )


# ============================================================================
# Check results
# ============================================================================

@dataclass(frozen=True)
class ExpiryDate:
    """Domain registration is valid until ``expires_at``."""
    expires_at: datetime

    def __str__(self) -> str:
        return format_timestamp(self.expires_at)


@dataclass(frozen=True)
class Disabled:
    """Domain check was skipped by configuration."""

    def __str__(self) -> str:
        return 'Disabled'


@dataclass(frozen=True)
class CheckError:
    """Domain check failed; contained to this domain only."""
    kind: ErrorKind
    message: str

    @classmethod
    def from_exception(cls, error: ExpiryCheckError) -> 'CheckError':
        return cls(kind=error.kind, message=error.message)

    def __str__(self) -> str:
        return self.message


CheckResult = Union[ExpiryDate, Disabled, CheckError]

DISABLED = Disabled()


@dataclass
class DomainCheck:
    """A domain record together with the result of checking it."""
    record: DomainRecord
    result: CheckResult

    @property
    def is_error(self) -> bool:
        return isinstance(self.result, CheckError)


@dataclass
class CheckAccountResult:
    """
    Results of checking one customer account during a single run.

    Entries are indexed by domain name; the full record is kept alongside
    the result so reports can echo its fields.
    """
    customer_name: str
    domain_results: Dict[str, DomainCheck] = field(default_factory=dict)

    def add(self, record: DomainRecord, result: CheckResult) -> None:
        if record.domain in self.domain_results:
            logger.warning(
                f"Duplicate domain {record.domain} for customer {self.customer_name}, "
                f"keeping the last result"
            )
        self.domain_results[record.domain] = DomainCheck(record=record, result=result)

    def get(self, domain: str) -> Optional[DomainCheck]:
        return self.domain_results.get(domain)

    def checks(self) -> List[DomainCheck]:
        return list(self.domain_results.values())

    @property
    def error_count(self) -> int:
        return sum(1 for c in self.domain_results.values() if c.is_error)

    def __iter__(self) -> Iterator[DomainCheck]:
        return iter(self.domain_results.values())

    def __len__(self) -> int:
        return len(self.domain_results)


# ============================================================================
# Run outcome
# ============================================================================

@dataclass
class DeliveryResult:
    """
    Result of sending one report email.

    Attributes:
        success: Whether the email was accepted for delivery
        recipient: Destination address
        customer_name: Customer the report belongs to
        message_id: Provider message id (if sent)
        error_message: Error description (if sending failed)
    """
    success: bool
    recipient: str
    customer_name: str
    message_id: Optional[str] = None
    error_message: Optional[str] = None

    def __repr__(self) -> str:
        if self.success:
            return f"DeliveryResult(success=True, recipient={self.recipient})"
        else:
            return f"DeliveryResult(success=False, recipient={self.recipient}, error={self.error_message})"


@dataclass
class RunSummary:
    """Outcome of one monitoring run."""
    run_id: str
    customers_checked: int = 0
    domains_checked: int = 0
    domain_errors: int = 0
    reports_needed: int = 0
    cache_size: int = 0
    deliveries: List[DeliveryResult] = field(default_factory=list)

    @property
    def emails_sent(self) -> int:
        return sum(1 for d in self.deliveries if d.success)

    @property
    def delivery_failures(self) -> int:
        return sum(1 for d in self.deliveries if not d.success)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'runId': self.run_id,
            'customersChecked': self.customers_checked,
            'domainsChecked': self.domains_checked,
            'domainErrors': self.domain_errors,
            'reportsNeeded': self.reports_needed,
            'emailsSent': self.emails_sent,
            'deliveryFailures': self.delivery_failures,
            'cacheSize': self.cache_size,
        }
