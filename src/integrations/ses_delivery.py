"""
Amazon SES report delivery.

Sends prepared MIME messages through SES ``send_raw_email`` so the text and
HTML alternatives built by services.email arrive unchanged.

Usage:
    from integrations import ses_delivery

    message_id = ses_delivery.send_email(message, "owner@example.com")
"""

import logging
import os
from email.message import EmailMessage

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from domain.models import ErrorKind, ExpiryCheckError
from services.email import with_recipient

logger = logging.getLogger(__name__)


def _initialize_ses_client(region: str = ''):
    """
    Initialize boto3 SES client with timeout configuration.

    Args:
        region: SES region; empty uses AWS_REGION / AWS_DEFAULT_REGION

    Returns:
        boto3.client: Configured SES client
    """
    client_config = Config(
        retries={
            'max_attempts': 2,
            'mode': 'standard'
        },
        connect_timeout=10,
        read_timeout=30
    )

    region = region or os.environ.get('AWS_REGION', os.environ.get('AWS_DEFAULT_REGION', 'us-east-1'))
    client = boto3.client('ses', region_name=region, config=client_config)

    logger.info(f"SES client initialized: region={region}")
    return client


# Initialize at module import time (reused across invocations)
ses_client = _initialize_ses_client()


def configure(region: str) -> None:
    """Recreate the SES client for a configured region."""
    global ses_client
    if region:
        ses_client = _initialize_ses_client(region)


def send_email(message: EmailMessage, recipient: str) -> str:
    """
    Send a report email to one recipient.

    Args:
        message: Prepared message with Subject and From set
        recipient: Destination address

    Returns:
        str: SES message id

    Raises:
        ExpiryCheckError: DELIVERY_FAILURE if SES rejects the message or the
            request fails
    """
    addressed = with_recipient(message, recipient)
    try:
        response = ses_client.send_raw_email(
            Source=addressed['From'],
            Destinations=[recipient],
            RawMessage={'Data': addressed.as_bytes()}
        )
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        error_message = e.response.get('Error', {}).get('Message', str(e))
        logger.error(
            f"Failed to send email to {recipient}: "
            f"error_code={error_code}, error_message={error_message}"
        )
        raise ExpiryCheckError(ErrorKind.DELIVERY_FAILURE, f"SES error {error_code}: {error_message}")
    except BotoCoreError as e:
        logger.error(f"Failed to send email to {recipient}: {e}")
        raise ExpiryCheckError(ErrorKind.DELIVERY_FAILURE, f"SES request failed: {e}")

    message_id = response.get('MessageId', '')
    logger.info(f"Email sent to {recipient}: message_id={message_id}")
    return message_id
