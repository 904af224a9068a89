"""
Domain expiry monitoring run - core business logic.

This module handles one end-to-end monitoring run:
1. Load the expiry cache and drop entries close to expiry
2. Load customer accounts
3. Check every domain (cache first, WHOIS on a miss)
4. Decide per customer whether a report is due and send it
5. Save the cache back

Per-domain and per-email failures are logged and kept in the results.
Failures to load configuration, customers or state, or to save state, raise
ExpiryCheckError and abort the run.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from .account_checker import AccountChecker
from .cache import ExpiryCache
from .models import (
    CheckAccountResult,
    CustomerAccount,
    DeliveryResult,
    ErrorKind,
    ExpiryCheckError,
    RunSummary,
)
from .notification_policy import is_need_send
from .report import create_account_report
from services import customers as customers_service
from services import email as email_service
from services import state as state_service
from integrations import ses_delivery

logger = logging.getLogger(__name__)


class ExpiryMonitor:
    """
    Runs domain expiry checks for all customers and sends due reports.

    Returns RunSummary with per-email DeliveryResult entries.
    """

    def __init__(self, settings: Any, gateway: Any):
        """
        Args:
            settings: Loaded Settings
            gateway: WHOIS gateway with ``get_whois_kv(domain)``
        """
        self.settings = settings
        self.gateway = gateway

    def run(self, now: Optional[datetime] = None) -> RunSummary:
        """
        Execute one monitoring run.

        Args:
            now: Current time (defaults to UTC now)

        Returns:
            RunSummary: Counters and delivery results of the run

        Raises:
            ExpiryCheckError: On fatal failures (customers, state I/O)
        """
        now = now or datetime.now(timezone.utc)
        summary = RunSummary(run_id=uuid.uuid4().hex[:12])
        logger.info(f"Run {summary.run_id} started at {now.isoformat()}")

        cache = self.load_cache(now)
        customers = customers_service.load_customers(self.settings.customers_file)

        checker = AccountChecker(self.gateway, cache)
        results = self.check_customers(checker, customers)

        summary.customers_checked = len(results)
        summary.domains_checked = sum(len(r) for _, r in results)
        summary.domain_errors = sum(r.error_count for _, r in results)

        for customer, account_result in results:
            if not is_need_send(self.settings, customer, account_result, now):
                logger.debug(f"Customer {customer.name}: no need to send report")
                continue

            logger.info(f"Customer {customer.name}: sending report")
            summary.reports_needed += 1
            summary.deliveries.extend(self.send_reports(customer, account_result))

        self.save_cache(cache)
        summary.cache_size = len(cache)

        logger.info(
            f"Run {summary.run_id} complete: customers={summary.customers_checked}, "
            f"domains={summary.domains_checked}, errors={summary.domain_errors}, "
            f"lookups={checker.lookup_count}, emails={summary.emails_sent}, "
            f"failed_emails={summary.delivery_failures}"
        )
        return summary

    def load_cache(self, now: datetime) -> ExpiryCache:
        """
        Load the persisted cache and evict entries close to expiry.

        A missing or malformed state gives an empty cache. Other read
        failures are fatal: removing the state file resets the cache.

        Raises:
            ExpiryCheckError: CACHE_IO_FAILURE if the state can't be read
        """
        location = self.settings.state_file
        if not location:
            logger.debug("State file path is empty, not loading state")
            return ExpiryCache()

        logger.info(f"Loading state: {location}")
        try:
            cache = state_service.load_state(location)
        except ExpiryCheckError as e:
            if e.kind != ErrorKind.CACHE_FORMAT_FAILURE:
                logger.error(f"State file error, remove it to reset the cache: {e.message}")
                raise
            logger.error(f"Ignoring invalid state, starting with empty cache: {e.message}")
            return ExpiryCache()

        if cache is None:
            logger.info("State not found, starting with empty cache")
            return ExpiryCache()

        evicted = cache.clean(now, self.settings.no_cache_days_before_expire)
        logger.info(f"Loaded cache: {len(cache)} domain(s), {evicted} evicted")
        return cache

    def save_cache(self, cache: ExpiryCache) -> None:
        if not self.settings.state_file:
            return
        state_service.save_state(self.settings.state_file, cache)

    def check_customers(
        self,
        checker: AccountChecker,
        customers: List[CustomerAccount]
    ) -> List[Tuple[CustomerAccount, CheckAccountResult]]:
        """Check all enabled customers, in file order."""
        results = []
        for customer in customers:
            if customer.disabled:
                logger.info(f"Customer {customer.name} disabled, skipping")
                continue
            results.append((customer, checker.check_account(customer)))
        return results

    def send_reports(
        self,
        customer: CustomerAccount,
        account_result: CheckAccountResult
    ) -> List[DeliveryResult]:
        """
        Send the account report to administrators and to the customer.

        Customer addresses prefixed with "off:" are skipped.

        Returns:
            List of DeliveryResult, one per attempted recipient
        """
        report_text = create_account_report(account_result)
        sender = self.settings.email_from
        deliveries = []

        admin_message = email_service.build_report_email(
            email_service.admin_subject(customer.name), sender, report_text
        )
        for address in self.settings.admin_emails:
            deliveries.append(self._deliver(customer, admin_message, address))

        customer_message = email_service.build_report_email(
            email_service.CUSTOMER_SUBJECT, sender, report_text
        )
        for address in customer.emails:
            if email_service.is_disabled_address(address):
                logger.debug(f"Customer {customer.name}: address {address} is off, skipping")
                continue
            deliveries.append(self._deliver(customer, customer_message, address))

        return deliveries

    def _deliver(self, customer: CustomerAccount, message, address: str) -> DeliveryResult:
        try:
            message_id = ses_delivery.send_email(message, address)
        except ExpiryCheckError as e:
            logger.warning(f"Report for {customer.name} to {address} not sent: {e.message}")
            return DeliveryResult(
                success=False,
                recipient=address,
                customer_name=customer.name,
                error_message=e.message
            )
        except Exception as e:
            logger.error(f"Report for {customer.name} to {address} failed: {e}", exc_info=True)
            return DeliveryResult(
                success=False,
                recipient=address,
                customer_name=customer.name,
                error_message=str(e)
            )

        return DeliveryResult(
            success=True,
            recipient=address,
            customer_name=customer.name,
            message_id=message_id
        )
