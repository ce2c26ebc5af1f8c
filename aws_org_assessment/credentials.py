"""Cross-account credential acquisition through STS role assumption."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import DEFAULT_SESSION_DURATION, AwsCredentials, role_arn_for_account
from .utils import scoped_client

logger = logging.getLogger(__name__)

SESSION_NAME_PREFIX = "SecurityAssessment"
_MAX_SESSION_NAME = 64


@dataclass(frozen=True)
class SessionCredentials:
    """Short-lived credentials scoped to a single target account."""

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: Optional[datetime]
    role_arn: str
    account_id: str

    def __repr__(self) -> str:
        expiry = self.expiration.isoformat() if self.expiration else "unknown"
        return (
            f"SessionCredentials(access_key_id={self.access_key_id[:8]}***, "
            f"account_id={self.account_id!r}, expiration={expiry})"
        )

    def session(self, region: str) -> boto3.session.Session:
        return boto3.session.Session(
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            aws_session_token=self.session_token,
            region_name=region,
        )


class RoleAssumptionError(Exception):
    """Raised when the audit role of a target account cannot be assumed."""

    def __init__(self, role_arn: str, cause: Exception) -> None:
        super().__init__(f"Failed to assume role {role_arn}: {cause}")
        self.role_arn = role_arn
        self.cause = cause


def build_session_name() -> str:
    """Return a role session name that is unique per call."""

    return f"{SESSION_NAME_PREFIX}-{uuid.uuid4().hex}"[:_MAX_SESSION_NAME]


def assume_audit_role(
    role_template: str,
    base_credentials: AwsCredentials,
    target_account_id: str,
    *,
    duration_seconds: int = DEFAULT_SESSION_DURATION,
    client_config: Optional[Config] = None,
) -> SessionCredentials:
    """Exchange ``base_credentials`` for a session in ``target_account_id``.

    Raises :class:`RoleAssumptionError` when STS rejects the request. The call
    is never retried.
    """

    role_arn = role_arn_for_account(role_template, target_account_id)
    session_name = build_session_name()
    logger.debug("Assuming %s as %s", role_arn, session_name)
    try:
        with scoped_client(
            base_credentials.session(), "sts", base_credentials.region, client_config
        ) as sts:
            response = sts.assume_role(
                RoleArn=role_arn,
                RoleSessionName=session_name,
                DurationSeconds=duration_seconds,
            )
    except (ClientError, BotoCoreError) as exc:
        raise RoleAssumptionError(role_arn, exc) from exc

    creds = response.get("Credentials")
    if not creds:
        raise RoleAssumptionError(role_arn, ValueError("AssumeRole returned no credentials"))
    return SessionCredentials(
        access_key_id=creds["AccessKeyId"],
        secret_access_key=creds["SecretAccessKey"],
        session_token=creds["SessionToken"],
        expiration=creds.get("Expiration"),
        role_arn=role_arn,
        account_id=target_account_id,
    )


def check_connection(
    base_credentials: AwsCredentials, *, client_config: Optional[Config] = None
) -> bool:
    """Return ``True`` when STS accepts ``base_credentials``."""

    try:
        with scoped_client(
            base_credentials.session(), "sts", base_credentials.region, client_config
        ) as sts:
            identity = sts.get_caller_identity()
    except (ClientError, BotoCoreError) as exc:
        logger.info("Connection test failed: %s", exc)
        return False
    logger.info("Authenticated as %s", identity.get("Arn", "unknown principal"))
    return True


__all__ = [
    "RoleAssumptionError",
    "SessionCredentials",
    "assume_audit_role",
    "build_session_name",
    "check_connection",
]
