"""Checks for CloudTrail trail configuration and log bucket protection."""
from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ..findings import Finding
from ..utils import error_code, http_status
from . import BaseChecker, CheckContext

PUBLIC_ACCESS_FLAGS = (
    "BlockPublicAcls",
    "IgnorePublicAcls",
    "BlockPublicPolicy",
    "RestrictPublicBuckets",
)


class CloudTrailConfigurationChecker(BaseChecker):
    check_name = "CLOUDTRAIL"
    description = "CloudTrail configuration"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("cloudtrail") as cloudtrail:
            trails = cloudtrail.describe_trails().get("trailList", [])
        if not trails:
            finding.fail("No CloudTrail configured")
            return

        with ctx.client("s3") as s3:
            for trail in trails:
                name = trail.get("Name", "")
                if not trail.get("IsMultiRegionTrail"):
                    finding.warn(f"CloudTrail '{name}' not multi-region")
                if not trail.get("IncludeGlobalServiceEvents"):
                    finding.warn(f"CloudTrail '{name}' global events not included")
                if not trail.get("LogFileValidationEnabled"):
                    finding.warn(f"CloudTrail '{name}' log integrity not enabled")

                bucket = trail.get("S3BucketName")
                if bucket:
                    _check_trail_bucket(finding, s3, bucket)


def _check_trail_bucket(finding: Finding, s3: Any, bucket: str) -> None:
    try:
        s3.get_bucket_encryption(Bucket=bucket)
    except ClientError as exc:
        if error_code(exc) == "NoSuchBucket" or http_status(exc) == 404:
            finding.warn(f"Trail S3 bucket '{bucket}' not found or not accessible")
        else:
            finding.warn(f"Trail S3 bucket '{bucket}' encryption check failed: {exc}")
    except BotoCoreError as exc:
        finding.warn(f"Trail S3 bucket '{bucket}' encryption check failed: {exc}")

    try:
        response = s3.get_public_access_block(Bucket=bucket)
    except ClientError as exc:
        if error_code(exc) == "NoSuchPublicAccessBlockConfiguration" or http_status(exc) == 404:
            finding.fail(
                f"Trail S3 bucket '{bucket}' does not have public access block configured"
            )
        else:
            finding.warn(f"Trail S3 bucket '{bucket}' public access check failed: {exc}")
        return
    except BotoCoreError as exc:
        finding.warn(f"Trail S3 bucket '{bucket}' public access check failed: {exc}")
        return

    config = response.get("PublicAccessBlockConfiguration", {})
    if not all(config.get(flag, False) for flag in PUBLIC_ACCESS_FLAGS):
        finding.warn(f"Trail S3 bucket '{bucket}' has public access settings enabled")


__all__ = ["CloudTrailConfigurationChecker", "PUBLIC_ACCESS_FLAGS"]
