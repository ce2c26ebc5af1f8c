"""Checks for account and bucket level S3 protection."""
from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ..findings import Finding
from ..utils import error_code, http_status
from . import BaseChecker, CheckContext
from .cloudtrail import PUBLIC_ACCESS_FLAGS

LOG_BUCKET_MARKERS = ("log", "trail")


class S3BaselineChecker(BaseChecker):
    check_name = "S3_BASELINE"
    description = "S3 baseline"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        _check_account_public_access_block(finding, ctx)

        with ctx.client("s3") as s3:
            buckets = s3.list_buckets().get("Buckets", [])
            for bucket in buckets:
                name = bucket["Name"]
                _check_bucket_public_access_block(finding, s3, name)
                _check_bucket_encryption(finding, s3, name)
                if any(marker in name for marker in LOG_BUCKET_MARKERS):
                    finding.warn(f"Log bucket '{name}' - verify write-only permissions")


def _check_account_public_access_block(finding: Finding, ctx: CheckContext) -> None:
    """Record the account-wide Block Public Access state."""

    try:
        with ctx.client("s3control") as s3control:
            response = s3control.get_public_access_block(AccountId=ctx.account.id)
    except ClientError as exc:
        if error_code(exc) == "NoSuchPublicAccessBlockConfiguration" or http_status(exc) == 404:
            finding.fail("Account-level S3 Block Public Access not configured")
        else:
            finding.warn(f"Account-level S3 Block Public Access check failed: {exc}")
        return
    except BotoCoreError as exc:
        finding.warn(f"Account-level S3 Block Public Access check failed: {exc}")
        return

    config = response.get("PublicAccessBlockConfiguration", {})
    if not all(config.get(flag, False) for flag in PUBLIC_ACCESS_FLAGS):
        finding.fail("Account-level S3 Block Public Access disabled")


def _check_bucket_public_access_block(finding: Finding, s3: Any, name: str) -> None:
    try:
        response = s3.get_public_access_block(Bucket=name)
    except ClientError as exc:
        if error_code(exc) == "NoSuchPublicAccessBlockConfiguration" or http_status(exc) == 404:
            finding.fail(f"Bucket '{name}' does not have public access block configured")
        else:
            finding.warn(f"Bucket '{name}' public access check failed: {exc}")
        return
    except BotoCoreError as exc:
        finding.warn(f"Bucket '{name}' public access check failed: {exc}")
        return

    config = response.get("PublicAccessBlockConfiguration", {})
    if not config.get("BlockPublicAcls") or not config.get("BlockPublicPolicy"):
        finding.fail(f"Public bucket detected: {name}")


def _check_bucket_encryption(finding: Finding, s3: Any, name: str) -> None:
    try:
        response = s3.get_bucket_encryption(Bucket=name)
    except ClientError as exc:
        code = error_code(exc)
        if code == "ServerSideEncryptionConfigurationNotFoundError":
            finding.warn(f"Bucket unencrypted: {name}")
        elif code == "NoSuchBucket" or http_status(exc) == 404:
            finding.warn(f"Bucket '{name}' not found or not accessible")
        else:
            finding.warn(f"Bucket '{name}' encryption check failed: {exc}")
        return
    except BotoCoreError as exc:
        finding.warn(f"Bucket '{name}' encryption check failed: {exc}")
        return

    rules = response.get("ServerSideEncryptionConfiguration", {}).get("Rules", [])
    if not rules:
        finding.warn(f"Bucket unencrypted: {name}")


__all__ = ["S3BaselineChecker"]
