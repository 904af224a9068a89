"""
Tests for the monitoring run pipeline.
"""

import pytest
from unittest.mock import Mock, patch
import sys
import os
from datetime import timedelta

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

from domain.cache import ExpiryCache
from domain.expiry_monitor import ExpiryMonitor
from domain.models import CheckAccountResult, CustomerAccount, DomainRecord, ErrorKind, ExpiryCheckError
from services.settings import Settings


@pytest.fixture
def settings():
    return Settings(
        admin_emails=["admin@example.com"],
        email_from="monitor@example.com",
        ok_report_day=0,
        expire_soon_days=30,
        no_cache_days_before_expire=30,
        state_file="state.yaml",
        customers_file="customers.yaml",
    )


@pytest.fixture
def gateway():
    mock = Mock()
    mock.get_whois_kv.return_value = {'paid-till': '2026-01-01T00:00:00Z'}
    return mock


class TestLoadCache:
    """Test state loading at run start."""

    def test_empty_state_file_skips_loading(self, settings, gateway, now):
        settings.state_file = ''
        with patch('services.state.load_state') as mock_load:
            cache = ExpiryMonitor(settings, gateway).load_cache(now)

        assert len(cache) == 0
        mock_load.assert_not_called()

    @patch('services.state.load_state')
    def test_missing_state_gives_empty_cache(self, mock_load, settings, gateway, now):
        mock_load.return_value = None

        cache = ExpiryMonitor(settings, gateway).load_cache(now)

        assert len(cache) == 0
        mock_load.assert_called_once_with("state.yaml")

    @patch('services.state.load_state')
    def test_invalid_state_gives_empty_cache(self, mock_load, settings, gateway, now):
        mock_load.side_effect = ExpiryCheckError(ErrorKind.CACHE_FORMAT_FAILURE, "bad yaml")

        cache = ExpiryMonitor(settings, gateway).load_cache(now)

        assert len(cache) == 0

    @patch('services.state.load_state')
    def test_io_failure_is_fatal(self, mock_load, settings, gateway, now):
        mock_load.side_effect = ExpiryCheckError(ErrorKind.CACHE_IO_FAILURE, "permission denied")

        with pytest.raises(ExpiryCheckError) as exc_info:
            ExpiryMonitor(settings, gateway).load_cache(now)

        assert exc_info.value.kind == ErrorKind.CACHE_IO_FAILURE

    @patch('services.state.load_state')
    def test_loaded_cache_is_cleaned(self, mock_load, settings, gateway, now):
        mock_load.return_value = ExpiryCache({
            'soon.com': now + timedelta(days=10),
            'later.com': now + timedelta(days=100),
        })

        cache = ExpiryMonitor(settings, gateway).load_cache(now)

        assert list(cache) == ['later.com']


class TestSendReports:
    """Test report delivery to admins and customers."""

    @patch('integrations.ses_delivery.send_email')
    def test_admin_and_customer_recipients(self, mock_send, settings, gateway, customer, now):
        """Test admins get a copy and 'off:' addresses are skipped."""
        mock_send.return_value = "ses-id"
        monitor = ExpiryMonitor(settings, gateway)
        checker_result = CheckAccountResult(customer_name=customer.name)

        deliveries = monitor.send_reports(customer, checker_result)

        recipients = [call.args[1] for call in mock_send.call_args_list]
        assert recipients == ["admin@example.com", "owner@example.com"]
        assert mock_send.call_args_list[0].args[0]['Subject'] == "Domain report - customer-1"
        assert mock_send.call_args_list[1].args[0]['Subject'] == "Domain report"
        assert all(d.success for d in deliveries)
        assert deliveries[0].message_id == "ses-id"

    @patch('integrations.ses_delivery.send_email')
    def test_delivery_failure_does_not_stop_others(self, mock_send, settings, gateway, customer):
        mock_send.side_effect = [
            ExpiryCheckError(ErrorKind.DELIVERY_FAILURE, "MessageRejected"),
            "ses-id",
        ]
        checker_result = CheckAccountResult(customer_name=customer.name)

        deliveries = ExpiryMonitor(settings, gateway).send_reports(customer, checker_result)

        assert [d.success for d in deliveries] == [False, True]
        assert deliveries[0].error_message == "MessageRejected"


class TestRun:
    """Test the full run."""

    @patch('integrations.ses_delivery.send_email')
    @patch('services.state.save_state')
    @patch('services.state.load_state')
    @patch('services.customers.load_customers')
    def test_run_success(self, mock_customers, mock_load, mock_save, mock_send,
                         settings, gateway, customer, now):
        """Test lookups fill the cache, reports are sent and state saved."""
        mock_customers.return_value = [customer]
        mock_load.return_value = ExpiryCache({'example.com': now + timedelta(days=200)})
        mock_send.return_value = "ses-id"

        summary = ExpiryMonitor(settings, gateway).run(now)

        gateway.get_whois_kv.assert_called_once_with("example.ru")
        saved_location, saved_cache = mock_save.call_args.args
        assert saved_location == "state.yaml"
        assert sorted(saved_cache) == ["example.com", "example.ru"]
        assert summary.customers_checked == 1
        assert summary.domains_checked == 3
        assert summary.reports_needed == 1
        assert summary.emails_sent == 2
        assert summary.cache_size == 2

    @patch('integrations.ses_delivery.send_email')
    @patch('services.state.save_state')
    @patch('services.state.load_state')
    @patch('services.customers.load_customers')
    def test_run_skips_disabled_customers(self, mock_customers, mock_load, mock_save, mock_send,
                                          settings, gateway, now):
        mock_customers.return_value = [
            CustomerAccount(name="off", disabled=True, emails=["a@example.com"],
                            domains=[DomainRecord(domain="example.org")]),
        ]
        mock_load.return_value = None

        summary = ExpiryMonitor(settings, gateway).run(now)

        assert summary.customers_checked == 0
        gateway.get_whois_kv.assert_not_called()
        mock_send.assert_not_called()
        mock_save.assert_called_once()

    @patch('integrations.ses_delivery.send_email')
    @patch('services.state.save_state')
    @patch('services.state.load_state')
    @patch('services.customers.load_customers')
    def test_run_no_report_when_not_due(self, mock_customers, mock_load, mock_save, mock_send,
                                        settings, gateway, customer, now):
        settings.ok_report_day = 1  # Monday, `now` is Wednesday
        mock_customers.return_value = [customer]
        mock_load.return_value = None

        summary = ExpiryMonitor(settings, gateway).run(now)

        assert summary.reports_needed == 0
        mock_send.assert_not_called()

    @patch('services.state.load_state')
    @patch('services.customers.load_customers')
    def test_customers_failure_aborts_run(self, mock_customers, mock_load, settings, gateway, now):
        mock_load.return_value = None
        mock_customers.side_effect = ExpiryCheckError(ErrorKind.CUSTOMERS_FAILURE, "not found")

        with pytest.raises(ExpiryCheckError) as exc_info:
            ExpiryMonitor(settings, gateway).run(now)

        assert exc_info.value.kind == ErrorKind.CUSTOMERS_FAILURE


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
