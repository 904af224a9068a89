"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
from datetime import datetime, timezone

import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-west-2')
os.environ.setdefault('AWS_ACCESS_KEY_ID', 'testing')
os.environ.setdefault('AWS_SECRET_ACCESS_KEY', 'testing')
os.environ.setdefault('WHOIS_TIMEOUT_SECONDS', '5')

from domain.models import CustomerAccount, DomainRecord  # noqa: E402


@pytest.fixture
def now():
    """Fixed current time: Wednesday 2025-01-15 12:00 UTC."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def customer():
    """Customer with two active domains and one disabled domain."""
    return CustomerAccount(
        name="customer-1",
        emails=["owner@example.com", "off:accountant@example.com"],
        domains=[
            DomainRecord(domain="example.com", account="reg-1", autorenew=True),
            DomainRecord(domain="example.ru", account="reg-2"),
            DomainRecord(domain="old-example.net", disabled=True),
        ]
    )
