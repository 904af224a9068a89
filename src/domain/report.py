"""
Account report rendering.

Builds the plain-text table sent to customers and administrators. Rows are
ordered by urgency: failed checks first, then domains by expiry date
(soonest first), then disabled domains by name.
"""

from functools import cmp_to_key
from typing import List, Sequence

from .models import CheckAccountResult, CheckError, Disabled, DomainCheck, ExpiryDate

HEADERS = ('Domain', 'Account', 'Expired', 'Autorenew')


def _rank(check: DomainCheck) -> int:
    if isinstance(check.result, CheckError):
        return 0
    if isinstance(check.result, ExpiryDate):
        return 1
    return 2


def compare_domain_checks(a: DomainCheck, b: DomainCheck) -> int:
    """
    Order two domain checks, most urgent first.

    Errors < ExpiryDate < Disabled. Errors are equal to each other (the sort
    keeps their input order), expiry dates compare by timestamp and disabled
    domains by name.

    Returns:
        int: Negative, zero or positive like a classic ``cmp``
    """
    rank_a, rank_b = _rank(a), _rank(b)
    if rank_a != rank_b:
        return -1 if rank_a < rank_b else 1

    if isinstance(a.result, ExpiryDate):
        left, right = a.result.expires_at, b.result.expires_at
    elif isinstance(a.result, Disabled):
        left, right = a.record.domain, b.record.domain
    else:
        return 0

    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def sort_domain_checks(checks: Sequence[DomainCheck]) -> List[DomainCheck]:
    return sorted(checks, key=cmp_to_key(compare_domain_checks))


def format_bool(value: bool) -> str:
    return 'true' if value else 'false'


def build_rows(account_result: CheckAccountResult) -> List[List[str]]:
    """Table rows (without header) in report order."""
    return [
        [
            check.record.domain,
            check.record.account,
            str(check.result),
            format_bool(check.record.autorenew),
        ]
        for check in sort_domain_checks(account_result.checks())
    ]


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    border = '+' + '+'.join('-' * (w + 2) for w in widths) + '+'

    def line(cells: Sequence[str]) -> str:
        return '|' + '|'.join(f" {cell.ljust(widths[i])} " for i, cell in enumerate(cells)) + '|'

    lines = [border, line(headers), border]
    lines.extend(line(row) for row in rows)
    lines.append(border)
    return '\n'.join(lines)


def create_account_report(account_result: CheckAccountResult) -> str:
    """
    Render a customer's check results as a table.

    Args:
        account_result: Results of one account check

    Returns:
        str: Table with Domain, Account, Expired and Autorenew columns

    Example:
        >>> print(create_account_report(result))
        +-------------+---------+---------------------------+-----------+
        | Domain      | Account | Expired                   | Autorenew |
        +-------------+---------+---------------------------+-----------+
        | example.com | reg-1   | 2025-01-01T00:00:00+00:00 | true      |
        +-------------+---------+---------------------------+-----------+
    """
    return render_table(HEADERS, build_rows(account_result))
