"""
Report sending decisions.

Pure functions of the settings, the check results and the current time.
Nothing is remembered between runs: every decision is recomputed.
"""

from datetime import datetime
from typing import Any

from .models import CheckAccountResult, CheckError, CustomerAccount, ExpiryDate, days_until

# ok_report_day value meaning "send on every run"
ALWAYS_SEND = 0


def need_attention(settings: Any, account_result: CheckAccountResult, now: datetime) -> bool:
    """
    Check whether an account has a failed check or a domain expiring soon.

    Already expired domains count as expiring soon.

    Args:
        settings: Object with ``expire_soon_days``
        account_result: Results of one account check
        now: Current UTC time

    Returns:
        bool: True if any domain needs attention
    """
    for check in account_result:
        if isinstance(check.result, CheckError):
            return True
        if isinstance(check.result, ExpiryDate):
            if days_until(check.result.expires_at, now) <= settings.expire_soon_days:
                return True
    return False


def is_need_send(
    settings: Any,
    customer: CustomerAccount,
    account_result: CheckAccountResult,
    now: datetime
) -> bool:
    """
    Decide whether a report must be sent for this customer.

    Priority:
    1. Never when every domain of the customer is disabled
    2. Always when ``ok_report_day`` is 0
    3. Always when the account needs attention
    4. Otherwise only on the configured weekday (1 = Monday ... 7 = Sunday)

    Args:
        settings: Object with ``ok_report_day`` and ``expire_soon_days``
        customer: Customer account the results belong to
        account_result: Results of checking ``customer``
        now: Current UTC time

    Returns:
        bool: True if the report should be sent
    """
    if customer.all_domains_disabled:
        return False

    if settings.ok_report_day == ALWAYS_SEND:
        return True

    if need_attention(settings, account_result, now):
        return True

    return now.weekday() == settings.ok_report_day - 1
