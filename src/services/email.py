"""
Report email composition.

This module builds the MIME messages carrying account reports. Delivery is
handled by integrations.ses_delivery.
"""

import copy
import html
import logging
from email.message import EmailMessage

logger = logging.getLogger(__name__)

ADMIN_SUBJECT = "Domain report - {customer}"
CUSTOMER_SUBJECT = "Domain report"

# Customer addresses with this prefix are kept in the file but not mailed
DISABLED_ADDRESS_PREFIX = 'off:'


def is_disabled_address(address: str) -> bool:
    """
    Check if a customer address is switched off.

    Example:
        >>> is_disabled_address("OFF:owner@example.com")
        True
    """
    return address.strip().lower().startswith(DISABLED_ADDRESS_PREFIX)


def admin_subject(customer_name: str) -> str:
    return ADMIN_SUBJECT.format(customer=customer_name)


def build_report_email(subject: str, sender: str, report_text: str) -> EmailMessage:
    """
    Build a report email with plain text and HTML alternatives.

    The HTML part wraps the table in <pre> so mail clients keep the columns
    aligned. The recipient is set at send time.

    Args:
        subject: Email subject
        sender: From address
        report_text: Rendered report table

    Returns:
        EmailMessage: multipart/alternative message without a To header

    Example:
        >>> msg = build_report_email("Domain report", "monitor@example.com", table)
        >>> msg.get_content_type()
        'multipart/alternative'
    """
    msg = EmailMessage()
    msg['Subject'] = subject
    msg['From'] = sender
    msg.set_content(report_text)
    msg.add_alternative(f"<pre>\n{html.escape(report_text)}\n</pre>", subtype='html')

    logger.debug(f"Built report email '{subject}': {len(report_text)} characters")
    return msg


def with_recipient(message: EmailMessage, recipient: str) -> EmailMessage:
    """Return a copy of ``message`` addressed to ``recipient``."""
    addressed = copy.deepcopy(message)
    del addressed['To']
    addressed['To'] = recipient
    return addressed
