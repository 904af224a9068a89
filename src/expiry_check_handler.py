"""
Entry points for domain expiry monitoring runs.

Thin orchestration layer that delegates to ExpiryMonitor:
- lambda_handler: scheduled invocation (e.g. daily EventBridge rule)
- main: command line

Fatal errors (config, customers, state I/O) fail the run. Per-domain and
per-email errors are reported in the summary.
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from domain.expiry_monitor import ExpiryMonitor
from domain.models import ExpiryCheckError
from integrations import ses_delivery
from integrations.whois_gateway import WhoisGateway
from services import settings as settings_service

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

LOG_FORMATS = {
    'lines': '%(asctime)s %(levelname)s %(name)s - %(message)s',
    'compact': '%(levelname)s - %(message)s',
}

LOG_LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'error': logging.ERROR,
}

# Add console handler for local runs (AWS Lambda provides handlers automatically)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMATS['compact']))
    logger.addHandler(console_handler)


def configure_logging(settings: settings_service.Settings) -> None:
    """Apply configured log level and format to the root logger."""
    level = LOG_LEVELS[settings.log_level]
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setFormatter(logging.Formatter(LOG_FORMATS[settings.log_format]))


def run(config_path: Optional[str]) -> Dict[str, Any]:
    """
    Load settings and execute one monitoring run.

    Returns:
        Dict with run counters

    Raises:
        ExpiryCheckError: On fatal failures
    """
    settings = settings_service.load_settings(config_path)
    configure_logging(settings)
    ses_delivery.configure(settings.aws_region)

    monitor = ExpiryMonitor(settings, WhoisGateway())
    summary = monitor.run()
    return summary.to_dict()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Run domain expiry checks on a schedule.

    Args:
        event: Scheduler event (optional "configFile" overrides the path)
        context: Lambda context

    Returns:
        Dict with run counters

    Raises:
        ExpiryCheckError: Re-raised so the invocation is marked failed
    """
    logger.info("=" * 70)
    logger.info("Domain Expiry Monitor - Started")
    logger.info("=" * 70)

    config_path = (event or {}).get('configFile') or settings_service.CONFIG_FILE

    try:
        result = run(config_path)
    except ExpiryCheckError as e:
        logger.error(f"Run aborted ({e.kind.value}): {e.message}")
        raise

    logger.info(f"Run summary: {result}")
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check domain registration expiry and email reports to customers."
    )
    parser.add_argument(
        '-c', '--config',
        default='config.yaml',
        help="Path to config file (default: config.yaml)"
    )
    parser.add_argument(
        '--print-default-config',
        action='store_true',
        help="Print the default config and exit. config.yaml only needs the "
             "required fields and the options you want to override."
    )
    parser.add_argument(
        '--print-customers-example',
        action='store_true',
        help="Print a customers.yaml example and exit."
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.print_default_config:
        print(settings_service.default_config_text())
        return 0

    if args.print_customers_example:
        print(settings_service.customers_example_text())
        return 0

    try:
        result = run(args.config)
    except ExpiryCheckError as e:
        logger.error(f"Run aborted ({e.kind.value}): {e.message}")
        return 1

    logger.info(f"Run summary: {result}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
