"""Presentation and export of assessment findings."""
from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

import boto3

from .findings import Finding, FindingStatus

logger = logging.getLogger(__name__)

CSV_HEADERS = (
    "Finding Title",
    "Details",
    "Recommended Fix",
    "Status",
    "Account ID",
    "Account Name",
)
REPORT_PREFIX = "aws_security_assessment"

PASS_REMEDIATION = "No action required - check passed."
DEFAULT_REMEDIATION = (
    "Review the finding details and consult AWS security best practices documentation."
)
REMEDIATIONS = {
    "ROOT_HYGIENE": "Enable MFA for root account. Remove root access keys if present. Monitor CloudTrail for root account usage.",
    "IAM_BASELINE": "Review IAM policies and remove overly permissive access. Enable MFA for all users. Rotate access keys regularly. Remove AdministratorAccess from IAM users.",
    "CROSS_ACCOUNT_TRUST": "Review and restrict cross-account trust policies. Add conditions to external trust relationships. Remove wildcard principals.",
    "CLOUDTRAIL": "Enable multi-region CloudTrail. Enable log file validation. Ensure CloudTrail captures all regions and global services.",
    "AWS_CONFIG": "Enable AWS Config recorder. Set up Config aggregator for organization-wide visibility.",
    "SECURITY_SERVICES": "Enable GuardDuty, Security Hub, Access Analyzer, and Inspector for comprehensive security monitoring.",
    "S3_BASELINE": "Enable account-level S3 Block Public Access. Encrypt all S3 buckets. Review bucket policies and ACLs.",
    "KMS_BASELINE": "Review KMS key policies for overly permissive access. Enable automatic key rotation where supported.",
    "NETWORK_BASELINE": "Remove default VPCs. Enable VPC Flow Logs. Configure VPC endpoints for S3 and SSM.",
    "MONITORING": "Set up CloudWatch alarms for unauthorized API calls, root account usage, and GuardDuty findings.",
    "BILLING": "Configure AWS Budgets with alerts. Review and restrict billing access permissions.",
    "TAGGING": "Implement mandatory tagging policy. Tag all resources with Environment, Owner, and Project tags.",
    "BACKUP": "Configure backup plans for critical resources. Enable encryption for backup vaults.",
    "IAC_GOVERNANCE": "Use CloudFormation StackSets for organization-wide deployments. Enable drift detection.",
    "INCIDENT_READINESS": "Document incident response runbooks. Conduct regular incident response testing. Establish incident response team.",
    "ORG_STRUCTURE": "Attach Service Control Policies (SCPs) to accounts. Organize accounts into OUs with appropriate policies.",
    "ASSESSMENT_ERROR": "Please verify your credentials and permissions, then try again.",
}


@dataclass
class FindingRow:
    """Flattened, display-ready view of a :class:`Finding`."""

    title: str
    details: str
    recommended_fix: str
    status: str
    account_id: str
    account_name: str

    def as_tuple(self) -> tuple:
        return (
            self.title,
            self.details,
            self.recommended_fix,
            self.status,
            self.account_id,
            self.account_name,
        )


def recommended_fix(finding: Finding) -> str:
    if finding.status is FindingStatus.PASS:
        return PASS_REMEDIATION
    return REMEDIATIONS.get(finding.check_name, DEFAULT_REMEDIATION)


def to_row(finding: Finding) -> FindingRow:
    return FindingRow(
        title=(
            f"[{finding.status.value}] {finding.check_name} - "
            f"{finding.account_name} ({finding.account_id})"
        ),
        details="; ".join(finding.messages),
        recommended_fix=recommended_fix(finding),
        status=finding.status.value,
        account_id=finding.account_id,
        account_name=finding.account_name,
    )


def to_rows(findings: Iterable[Finding]) -> List[FindingRow]:
    return [to_row(finding) for finding in findings]


def default_report_name(extension: str, *, now: Optional[datetime] = None) -> str:
    """Return a timestamped report file name such as ``aws_security_assessment_20240101_120000.json``."""

    now = now or datetime.now(timezone.utc)
    return f"{REPORT_PREFIX}_{now:%Y%m%d_%H%M%S}.{extension.lstrip('.')}"


def findings_to_json(findings: Iterable[Finding]) -> str:
    return json.dumps([finding.to_dict() for finding in findings], indent=2)


def export_json(findings: Iterable[Finding], path: str) -> str:
    """Write ``findings`` as an indented JSON array to ``path``."""

    with open(path, "w", encoding="utf-8") as fh:
        fh.write(findings_to_json(findings))
    return path


def export_csv(rows: Iterable[FindingRow], path: str) -> str:
    """Write ``rows`` to ``path`` as CSV.

    Fields containing a comma, quote or line break are quoted and embedded
    quotes are doubled.
    """

    with open(path, "w", encoding="utf-8", newline="") as fh:
        writer = csv.writer(fh, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
        writer.writerow(CSV_HEADERS)
        for row in rows:
            writer.writerow(row.as_tuple())
    return path


def read_csv(path: str) -> List[FindingRow]:
    """Load rows previously written by :func:`export_csv`."""

    with open(path, encoding="utf-8", newline="") as fh:
        reader = csv.reader(fh)
        header = next(reader, None)
        if header is None:
            return []
        if tuple(header) != CSV_HEADERS:
            raise ValueError(f"Unexpected CSV header: {header}")
        return [FindingRow(*record) for record in reader if record]


def export_excel(rows: Iterable[FindingRow], path: str) -> str:
    """Write ``rows`` to an Excel workbook located at ``path``."""

    return _export_rows_to_excel(
        (row.as_tuple() for row in rows),
        CSV_HEADERS,
        path,
        sheet_title="Findings",
    )


def _export_rows_to_excel(
    rows: Iterable[Sequence[object]],
    headers: Sequence[str],
    path: str,
    *,
    sheet_title: str,
) -> str:
    """Write ``rows`` with ``headers`` to an Excel sheet using :mod:`openpyxl`."""

    try:
        from openpyxl import Workbook
        from openpyxl.utils import get_column_letter
    except ImportError as exc:  # pragma: no cover - dependency missing during tests
        raise RuntimeError(
            "The 'openpyxl' package is required to export findings to Excel. "
            "Install it with 'pip install openpyxl'."
        ) from exc

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title

    sheet.append(list(headers))
    column_widths = [len(header) for header in headers]

    for row in rows:
        values = list(row)
        sheet.append(values)
        for idx, value in enumerate(values):
            column_widths[idx] = max(column_widths[idx], len(str(value)))

    for idx, width in enumerate(column_widths, start=1):
        column_letter = get_column_letter(idx)
        sheet.column_dimensions[column_letter].width = min(width + 2, 60)

    workbook.save(path)
    return path


def upload_to_s3(
    findings: Iterable[Finding],
    bucket: str,
    key_prefix: str,
    session: boto3.session.Session,
    *,
    now: Optional[datetime] = None,
) -> str:
    """Upload the JSON report to ``bucket`` and return the object key."""

    if not bucket or not bucket.strip():
        raise ValueError("Please enter a bucket name.")
    prefix = key_prefix.strip()
    if prefix and not prefix.endswith("/"):
        prefix += "/"
    key = prefix + default_report_name("json", now=now)

    s3 = session.client("s3")
    try:
        s3.put_object(
            Bucket=bucket.strip(),
            Key=key,
            Body=findings_to_json(findings).encode("utf-8"),
            ContentType="application/json",
        )
    finally:
        s3.close()
    logger.info("Uploaded report to s3://%s/%s", bucket.strip(), key)
    return key


__all__ = [
    "CSV_HEADERS",
    "FindingRow",
    "REMEDIATIONS",
    "default_report_name",
    "export_csv",
    "export_excel",
    "export_json",
    "read_csv",
    "recommended_fix",
    "to_row",
    "to_rows",
    "upload_to_s3",
]
