"""
Persisted cache state.

The expiry cache is stored between runs as a YAML document:

    domains_expire:
      example.com: '2026-08-13T04:00:00+00:00'

The location is either a local file path or an S3 object written as
s3://bucket/key (Lambda has no persistent disk).
"""

import logging
from typing import Optional, Tuple

import boto3
import yaml
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from domain.cache import ExpiryCache
from domain.models import ErrorKind, ExpiryCheckError

logger = logging.getLogger(__name__)

S3_SCHEME = 's3://'
STATE_KEY = 'domains_expire'

# Configure S3 client with timeouts to prevent infinite hangs
s3_config = Config(
    retries={
        'max_attempts': 1,  # 1 attempt total (no retries)
        'mode': 'standard'
    },
    connect_timeout=10,
    read_timeout=30
)

# Initialize S3 client at module level (reused across invocations)
s3_client = boto3.client('s3', config=s3_config)


def parse_s3_location(location: str) -> Optional[Tuple[str, str]]:
    """
    Split an s3://bucket/key location.

    Returns:
        (bucket, key) tuple, or None for a local path

    Raises:
        ExpiryCheckError: CACHE_IO_FAILURE if bucket or key is missing
    """
    if not location.startswith(S3_SCHEME):
        return None

    bucket, _, key = location[len(S3_SCHEME):].partition('/')
    if not bucket or not key:
        raise ExpiryCheckError(ErrorKind.CACHE_IO_FAILURE, f"Invalid S3 state location: {location}")
    return bucket, key


def _read(location: str) -> Optional[str]:
    s3_location = parse_s3_location(location)

    if s3_location is None:
        try:
            with open(location, 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ExpiryCheckError(ErrorKind.CACHE_IO_FAILURE, f"Can't read state file {location}: {e}")

    bucket, key = s3_location
    try:
        response = s3_client.get_object(Bucket=bucket, Key=key)
        return response['Body'].read().decode('utf-8')
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', '')
        if error_code in ('NoSuchKey', '404'):
            return None
        logger.error(f"Failed to fetch state from {location}: {e}")
        raise ExpiryCheckError(ErrorKind.CACHE_IO_FAILURE, f"Can't read state {location}: {error_code or e}")
    except BotoCoreError as e:
        logger.error(f"Failed to fetch state from {location}: {e}")
        raise ExpiryCheckError(ErrorKind.CACHE_IO_FAILURE, f"Can't read state {location}: {e}")


def _write(location: str, content: str) -> None:
    s3_location = parse_s3_location(location)

    if s3_location is None:
        try:
            with open(location, 'w', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            raise ExpiryCheckError(ErrorKind.CACHE_IO_FAILURE, f"Can't write state file {location}: {e}")
        return

    bucket, key = s3_location
    try:
        s3_client.put_object(
            Bucket=bucket,
            Key=key,
            Body=content.encode('utf-8'),
            ContentType='application/x-yaml'
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to upload state to {location}: {e}")
        raise ExpiryCheckError(ErrorKind.CACHE_IO_FAILURE, f"Can't write state {location}: {e}")


def load_state(location: str) -> Optional[ExpiryCache]:
    """
    Load the expiry cache.

    Args:
        location: Local path or s3://bucket/key

    Returns:
        ExpiryCache, or None if the state doesn't exist yet

    Raises:
        ExpiryCheckError: CACHE_IO_FAILURE if the state can't be read,
            CACHE_FORMAT_FAILURE if its content is invalid
    """
    content = _read(location)
    if content is None:
        return None

    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ExpiryCheckError(ErrorKind.CACHE_FORMAT_FAILURE, f"Invalid state YAML in {location}: {e}")

    if document is None:
        return ExpiryCache()
    if not isinstance(document, dict):
        raise ExpiryCheckError(
            ErrorKind.CACHE_FORMAT_FAILURE,
            f"State {location} must contain a mapping, got {type(document).__name__}"
        )

    return ExpiryCache.deserialize(document.get(STATE_KEY))


def save_state(location: str, cache: ExpiryCache) -> None:
    """
    Persist the whole cache, overwriting the previous state.

    Raises:
        ExpiryCheckError: CACHE_IO_FAILURE if the state can't be written
    """
    content = yaml.safe_dump({STATE_KEY: cache.serialize()}, default_flow_style=False, sort_keys=True)
    _write(location, content)
    logger.info(f"Saved state: {len(cache)} domain(s) to {location}")
