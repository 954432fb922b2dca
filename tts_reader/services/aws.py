"""Shared AWS helpers for service clients."""

from __future__ import annotations

from typing import Any

import boto3

from tts_reader.config.settings import settings


def _credential_kwargs(
    aws_access_key_id: str | None,
    aws_secret_access_key: str | None,
) -> dict[str, Any]:
    if aws_access_key_id and aws_secret_access_key:
        return {
            "aws_access_key_id": aws_access_key_id,
            "aws_secret_access_key": aws_secret_access_key,
        }
    if settings.aws.access_key_id and settings.aws.secret_access_key:
        return {
            "aws_access_key_id": settings.aws.access_key_id,
            "aws_secret_access_key": settings.aws.secret_access_key,
        }
    return {}


def create_boto3_client(
    service_name: str,
    *,
    region_name: str | None = None,
    aws_access_key_id: str | None = None,
    aws_secret_access_key: str | None = None,
) -> Any:
    """Instantiate a boto3 client using configured credentials if available."""

    client_kwargs: dict[str, Any] = {"region_name": region_name or settings.aws.region}
    client_kwargs.update(_credential_kwargs(aws_access_key_id, aws_secret_access_key))
    return boto3.client(service_name, **client_kwargs)


def create_boto3_resource(
    service_name: str,
    *,
    region_name: str | None = None,
) -> Any:
    """Instantiate a boto3 service resource with the same credential rules."""

    resource_kwargs: dict[str, Any] = {"region_name": region_name or settings.aws.region}
    resource_kwargs.update(_credential_kwargs(None, None))
    return boto3.resource(service_name, **resource_kwargs)


__all__ = ["create_boto3_client", "create_boto3_resource"]
