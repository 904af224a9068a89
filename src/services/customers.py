"""
Customer accounts loading.

The customers file is a YAML list of accounts, see
templates/customers-example.yaml.
"""

import logging
from typing import List

import yaml

from domain.models import CustomerAccount, ErrorKind, ExpiryCheckError

logger = logging.getLogger(__name__)


def parse_customers(data) -> List[CustomerAccount]:
    """
    Build customer accounts from the parsed YAML document.

    Raises:
        ValueError: If the document structure is invalid
    """
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"Customers file must contain a list, got {type(data).__name__}")
    return [CustomerAccount.from_dict(item) for item in data]


def load_customers(path: str) -> List[CustomerAccount]:
    """
    Load customer accounts from a YAML file.

    Args:
        path: Customers file path

    Returns:
        List of CustomerAccount in file order

    Raises:
        ExpiryCheckError: CUSTOMERS_FAILURE if the file can't be read or is
            invalid
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            customers = parse_customers(yaml.safe_load(f))
    except (OSError, yaml.YAMLError, ValueError) as e:
        logger.error(f"Error while loading customers config {path}: {e}")
        raise ExpiryCheckError(ErrorKind.CUSTOMERS_FAILURE, f"Failed to load customers from {path}: {e}")

    logger.debug(f"Loaded {len(customers)} customer(s) from {path}")
    return customers
