"""Checks for customer managed KMS keys."""
from __future__ import annotations

from typing import Any, Dict

from botocore.exceptions import BotoCoreError, ClientError

from ..findings import Finding
from ..utils import paginate
from . import BaseChecker, CheckContext
from .iam import aws_principals, policy_document, statements


class KmsBaselineChecker(BaseChecker):
    check_name = "KMS_BASELINE"
    description = "KMS baseline"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("kms") as kms:
            keys = paginate(
                kms.list_keys,
                "Keys",
                token_key="NextMarker",
                request_token_key="Marker",
                truncated_key="Truncated",
            )
            for key in keys:
                key_id = key.get("KeyId", "")
                if not key_id:
                    continue
                metadata = kms.describe_key(KeyId=key_id).get("KeyMetadata", {})
                if not _is_customer_managed(metadata):
                    continue

                policy = kms.get_key_policy(KeyId=key_id, PolicyName="default").get("Policy")
                if is_broad_key_policy(policy_document(policy)):
                    finding.fail(f"KMS key has overly broad permissions: {key_id}")

                if metadata.get("KeySpec", "SYMMETRIC_DEFAULT") != "SYMMETRIC_DEFAULT":
                    # rotation only applies to symmetric keys
                    continue
                try:
                    status = kms.get_key_rotation_status(KeyId=key_id)
                except (ClientError, BotoCoreError) as exc:
                    finding.warn(f"Could not check rotation status for key {key_id}: {exc}")
                    continue
                if not status.get("KeyRotationEnabled"):
                    finding.warn(f"KMS key rotation disabled: {key_id}")


def _is_customer_managed(metadata: Dict[str, Any]) -> bool:
    return metadata.get("KeyManager", "CUSTOMER") == "CUSTOMER" and metadata.get(
        "KeyState", "Enabled"
    ) not in {"PendingDeletion", "PendingReplicaDeletion"}


def is_broad_key_policy(document: Dict[str, Any]) -> bool:
    """Return ``True`` for policies allowing every action or any principal."""

    for statement in statements(document):
        if statement.get("Effect") != "Allow":
            continue
        actions = statement.get("Action")
        if actions == "*" or (isinstance(actions, list) and "*" in actions):
            return True
        if "*" in aws_principals(statement) and not statement.get("Condition"):
            return True
    return False


__all__ = ["KmsBaselineChecker", "is_broad_key_policy"]
