"""Checks for IAM users, policies, roles and the root account."""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Iterator, List
from urllib.parse import unquote

from botocore.exceptions import ClientError

from ..findings import Finding
from ..utils import error_code, paginate
from . import BaseChecker, CheckContext

ACCESS_KEY_MAX_AGE = timedelta(days=90)
ADMIN_POLICY_NAME = "AdministratorAccess"


def iam_list(method: Any, items_key: str, **params: Any) -> Iterator[dict]:
    """Drain an IAM ``Marker``/``IsTruncated`` style listing."""

    return paginate(
        method, items_key, token_key="Marker", truncated_key="IsTruncated", **params
    )


def policy_document(value: Any) -> Dict[str, Any]:
    """Return a policy document as a dict.

    boto3 usually decodes IAM documents already; raw URL-encoded JSON strings
    are accepted as well.
    """

    if isinstance(value, dict):
        return value
    if not value:
        return {}
    text = unquote(value) if value.lstrip().startswith("%") else value
    return json.loads(text)


def statements(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    items = document.get("Statement", [])
    if isinstance(items, dict):
        return [items]
    return list(items)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def aws_principals(statement: Dict[str, Any]) -> List[str]:
    principal = statement.get("Principal")
    if principal == "*":
        return ["*"]
    if isinstance(principal, dict):
        return [str(p) for p in _as_list(principal.get("AWS"))]
    return []


def _principal_account(principal: str) -> str:
    if principal.startswith("arn:"):
        parts = principal.split(":")
        return parts[4] if len(parts) > 4 else ""
    if principal.isdigit():
        return principal
    return ""


class RootAccountHygieneChecker(BaseChecker):
    check_name = "ROOT_HYGIENE"
    description = "root account hygiene"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("iam") as iam:
            summary = iam.get_account_summary().get("SummaryMap", {})
        if summary.get("AccountMFAEnabled") == 0:
            finding.fail("Root MFA not enabled")
        if summary.get("AccountAccessKeysPresent"):
            finding.fail("Root access keys are present")
        else:
            finding.warn(
                "Root access key detection requires management account access - verify manually"
            )
        finding.warn(
            "Root account usage detection requires CloudTrail analysis - verify manually"
        )


class IamBaselineChecker(BaseChecker):
    check_name = "IAM_BASELINE"
    description = "IAM baseline"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        now = datetime.now(timezone.utc)
        with ctx.client("iam") as iam:
            users = list(iam_list(iam.list_users, "Users"))
            policies = list(iam_list(iam.list_policies, "Policies", Scope="Local"))

            for user in users:
                self._check_user(finding, iam, user["UserName"], now)

            for policy in policies:
                version = iam.get_policy_version(
                    PolicyArn=policy["Arn"], VersionId=policy["DefaultVersionId"]
                )
                document = policy_document(version["PolicyVersion"].get("Document"))
                if is_overly_permissive(document):
                    finding.fail(f"Overly permissive IAM policy: {policy['PolicyName']}")

    def _check_user(self, finding: Finding, iam: Any, user_name: str, now: datetime) -> None:
        attached = iam_list(
            iam.list_attached_user_policies, "AttachedPolicies", UserName=user_name
        )
        if any(policy.get("PolicyName") == ADMIN_POLICY_NAME for policy in attached):
            finding.fail(f"IAM user '{user_name}' has {ADMIN_POLICY_NAME}")

        for key in iam_list(iam.list_access_keys, "AccessKeyMetadata", UserName=user_name):
            created = key.get("CreateDate")
            if created is not None and now - created > ACCESS_KEY_MAX_AGE:
                finding.warn(f"IAM key for user '{user_name}' older than 90 days")

        mfa_devices = list(iam_list(iam.list_mfa_devices, "MFADevices", UserName=user_name))
        try:
            iam.get_login_profile(UserName=user_name)
        except ClientError as exc:
            if error_code(exc) == "NoSuchEntity":
                # no console access
                return
            raise
        if not mfa_devices:
            finding.warn(f"User '{user_name}' missing MFA")


def is_overly_permissive(document: Dict[str, Any]) -> bool:
    """Return ``True`` when an Allow statement grants ``*`` actions or resources."""

    for statement in statements(document):
        if statement.get("Effect") != "Allow":
            continue
        if "*" in _as_list(statement.get("Action")) or "*" in _as_list(statement.get("Resource")):
            return True
    return False


class CrossAccountTrustChecker(BaseChecker):
    check_name = "CROSS_ACCOUNT_TRUST"
    description = "cross-account trust"

    def inspect(self, finding: Finding, ctx: CheckContext) -> None:
        with ctx.client("iam") as iam:
            for role in iam_list(iam.list_roles, "Roles"):
                role_name = role["RoleName"]
                document = role.get("AssumeRolePolicyDocument")
                if document is None:
                    document = iam.get_role(RoleName=role_name)["Role"].get(
                        "AssumeRolePolicyDocument"
                    )
                self._check_trust(finding, role_name, policy_document(document), ctx.account.id)

    @staticmethod
    def _check_trust(
        finding: Finding, role_name: str, document: Dict[str, Any], account_id: str
    ) -> None:
        for statement in statements(document):
            if statement.get("Effect", "Allow") != "Allow":
                continue
            principals = aws_principals(statement)
            if "*" in principals:
                finding.fail(f"Role '{role_name}' trust allows any AWS account")
                continue
            external = _external_principals(principals, account_id)
            if external and not statement.get("Condition"):
                finding.warn(f"Role '{role_name}' has external trust with no conditions")


def _external_principals(principals: Iterable[str], account_id: str) -> List[str]:
    external = []
    for principal in principals:
        owner = _principal_account(principal)
        if owner and owner != account_id:
            external.append(principal)
    return external


__all__ = [
    "CrossAccountTrustChecker",
    "IamBaselineChecker",
    "RootAccountHygieneChecker",
    "iam_list",
    "is_overly_permissive",
    "policy_document",
]
