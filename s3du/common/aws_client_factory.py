"""
AWS Client Factory Module
Provides standardized boto3 client creation for the sizing backends.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import boto3
from botocore.config import Config
from dotenv import load_dotenv

# Every call carries these transport limits; a stuck call only stalls its own bucket.
CONNECT_TIMEOUT_SECONDS = 10
READ_TIMEOUT_SECONDS = 60
MAX_RETRY_ATTEMPTS = 5


def _resolve_env_path(env_path: Optional[str] = None) -> str:
    """
    Determine which .env file should be used for AWS credentials.

    Priority order:
      1. Explicit parameter
      2. AWS_ENV_FILE environment variable
      3. ~/.env
    """
    if env_path:
        return env_path
    aws_env_file = os.environ.get("AWS_ENV_FILE")
    if aws_env_file:
        return aws_env_file
    return str(Path.home() / ".env")


def load_credentials_from_env(env_path: Optional[str] = None) -> tuple[str, str]:
    """
    Load AWS credentials from a .env file and return them as a tuple.

    Args:
        env_path: Optional override path (defaults to AWS_ENV_FILE, then ~/.env)

    Returns:
        tuple: (aws_access_key_id, aws_secret_access_key)

    Raises:
        ValueError: If credentials are not found in the .env file or environment
    """
    resolved_path = _resolve_env_path(env_path)
    load_dotenv(resolved_path)

    aws_access_key_id = os.getenv("AWS_ACCESS_KEY_ID")
    aws_secret_access_key = os.getenv("AWS_SECRET_ACCESS_KEY")
    if aws_access_key_id and aws_secret_access_key:
        logging.info("AWS credentials loaded from %s", resolved_path)
        return aws_access_key_id, aws_secret_access_key

    raise ValueError(f"AWS credentials not found in {resolved_path}")


def transport_config() -> Config:
    """botocore configuration shared by every client: timeouts and adaptive retries."""
    return Config(
        connect_timeout=CONNECT_TIMEOUT_SECONDS,
        read_timeout=READ_TIMEOUT_SECONDS,
        retries={"max_attempts": MAX_RETRY_ATTEMPTS, "mode": "adaptive"},
    )


def create_client(
    service_name: str,
    region: Optional[str] = None,
    endpoint_url: Optional[str] = None,
    aws_access_key_id: Optional[str] = None,
    aws_secret_access_key: Optional[str] = None,
):
    """
    Create a boto3 client for an AWS service.

    Explicit keys win; otherwise keys are read from the .env file, and when
    that has none boto3's own credential chain (profiles, instance roles...)
    is left to resolve them.

    Args:
        service_name: AWS service name ('s3' or 'cloudwatch')
        region: AWS region name
        endpoint_url: Optional endpoint override for S3-compatible stores
        aws_access_key_id: Optional AWS access key
        aws_secret_access_key: Optional AWS secret key

    Returns:
        boto3.client: Configured AWS service client
    """
    if aws_access_key_id is None or aws_secret_access_key is None:
        try:
            aws_access_key_id, aws_secret_access_key = load_credentials_from_env()
        except ValueError:
            logging.debug("No .env credentials, using the default boto3 credential chain")
            aws_access_key_id = aws_secret_access_key = None

    client_kwargs = {"config": transport_config()}
    if aws_access_key_id and aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = aws_access_key_id
        client_kwargs["aws_secret_access_key"] = aws_secret_access_key
        aws_session_token = os.getenv("AWS_SESSION_TOKEN")
        if aws_session_token:
            client_kwargs["aws_session_token"] = aws_session_token

    if region is not None:
        client_kwargs["region_name"] = region
    if endpoint_url is not None:
        client_kwargs["endpoint_url"] = endpoint_url

    return boto3.client(service_name, **client_kwargs)


def create_s3_client(region: Optional[str], endpoint_url: Optional[str] = None):
    """Create an S3 boto3 client."""
    return create_client("s3", region, endpoint_url)


def create_cloudwatch_client(region: Optional[str]):
    """Create a CloudWatch boto3 client. S3 storage metrics live in each bucket's region."""
    return create_client("cloudwatch", region)
