"""Run-scoped configuration and operator supplied credentials."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.config import Config

DEFAULT_REGION = "us-east-1"
DEFAULT_SESSION_DURATION = 3600
DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_READ_TIMEOUT = 60


class ConfigurationError(ValueError):
    """Raised when operator input cannot be used to start an assessment."""


def _mask(value: str, visible: int = 4) -> str:
    if not value:
        return ""
    return f"{value[:visible]}***"


@dataclass(frozen=True)
class AwsCredentials:
    """Long-lived base credential supplied by the operator."""

    access_key_id: str
    secret_access_key: str
    region: str = DEFAULT_REGION
    session_token: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"AwsCredentials(access_key_id={_mask(self.access_key_id)}, "
            f"region={self.region!r})"
        )

    def session(self, region: Optional[str] = None) -> boto3.session.Session:
        """Return a boto3 session authenticated with these credentials."""

        return boto3.session.Session(
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            aws_session_token=self.session_token,
            region_name=region or self.region,
        )


@dataclass(frozen=True)
class AssessmentConfig:
    """Parameters that stay fixed for the duration of one assessment run.

    ``audit_role_template`` is a role ARN whose account segment is replaced
    with each target account id, e.g.
    ``arn:aws:iam::111111111111:role/SecurityAudit``.
    """

    audit_role_template: str
    region: Optional[str] = None
    session_duration_seconds: int = DEFAULT_SESSION_DURATION
    max_workers: Optional[int] = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
    deadline_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.audit_role_template or not self.audit_role_template.strip():
            raise ConfigurationError("Audit Role ARN is required")
        if self.session_duration_seconds <= 0:
            raise ConfigurationError("Session duration must be a positive number of seconds")
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise ConfigurationError("Deadline must be a positive number of seconds")

    def region_for(self, credentials: AwsCredentials) -> str:
        return self.region or credentials.region or DEFAULT_REGION


def role_arn_for_account(template: str, account_id: str) -> str:
    """Return ``template`` with its account id segment replaced by ``account_id``.

    Templates with fewer than five colon separated segments are returned
    unchanged.
    """

    parts = template.strip().split(":")
    if len(parts) >= 5:
        parts[4] = account_id
    return ":".join(parts)


def client_config(config: Optional[AssessmentConfig] = None) -> Config:
    """Return the botocore client configuration shared by every AWS call.

    Retries are disabled; a failed call surfaces to its caller.
    """

    connect_timeout = config.connect_timeout if config else DEFAULT_CONNECT_TIMEOUT
    read_timeout = config.read_timeout if config else DEFAULT_READ_TIMEOUT
    return Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": 1, "mode": "standard"},
    )


__all__ = [
    "AssessmentConfig",
    "AwsCredentials",
    "ConfigurationError",
    "DEFAULT_REGION",
    "client_config",
    "role_arn_for_account",
]
