"""Credential and client helpers shared by the S3, Transcribe and Bedrock adapters."""

from __future__ import annotations

import os
from typing import Any, Optional, Tuple

import boto3
from botocore.config import Config

from voiceflow.config.settings import settings

Credentials = Tuple[str, str]


def configured_credentials() -> Optional[Credentials]:
    """Static keys from settings, or ``None`` to fall back to the default chain."""

    if settings.s3.access_key and settings.s3.secret_key:
        return settings.s3.access_key, settings.s3.secret_key
    return None


def export_credentials() -> None:
    """Expose configured keys to SDKs that only read the default provider chain."""

    credentials = configured_credentials()
    if credentials is None:
        return
    os.environ.setdefault("AWS_ACCESS_KEY_ID", credentials[0])
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", credentials[1])


def create_boto3_client(
    service_name: str,
    *,
    region_name: str | None = None,
    credentials: Optional[Credentials] = None,
    max_attempts: int | None = None,
    read_timeout: float | None = None,
) -> Any:
    """Build a boto3 client for one of the recording providers.

    ``max_attempts`` caps botocore's own retries; the upload stage passes 1
    because the pipeline already retries around it.
    """

    client_kwargs: dict[str, Any] = {"region_name": region_name or settings.s3.region}
    credentials = credentials or configured_credentials()
    if credentials is not None:
        client_kwargs["aws_access_key_id"] = credentials[0]
        client_kwargs["aws_secret_access_key"] = credentials[1]

    config_kwargs: dict[str, Any] = {}
    if max_attempts is not None:
        config_kwargs["retries"] = {"max_attempts": max_attempts, "mode": "standard"}
    if read_timeout is not None:
        config_kwargs["read_timeout"] = read_timeout
    if config_kwargs:
        client_kwargs["config"] = Config(**config_kwargs)

    return boto3.client(service_name, **client_kwargs)


__all__ = ["Credentials", "configured_credentials", "create_boto3_client", "export_credentials"]
