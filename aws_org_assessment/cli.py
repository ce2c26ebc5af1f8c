"""Command line interface for the organization security assessment."""
from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .config import (
    DEFAULT_REGION,
    AssessmentConfig,
    AwsCredentials,
    ConfigurationError,
    client_config,
)
from .core import Progress, print_findings, run_assessment, summarize
from .credentials import check_connection
from .logging_utils import configure_logging
from .report import export_csv, export_excel, export_json, to_rows, upload_to_s3

logger = logging.getLogger(__name__)

ACCESS_KEY_PATTERN = re.compile(r"^(AKIA|ASIA)[A-Z0-9]{16}$")
SECRET_KEY_LENGTH = 40


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Return parsed command line arguments."""

    parser = argparse.ArgumentParser(
        description="Assess the security posture of every active account in an AWS Organization."
    )
    parser.add_argument(
        "--access-key-id",
        default=os.environ.get("AWS_ACCESS_KEY_ID"),
        help="Access key id of the base credential (defaults to AWS_ACCESS_KEY_ID)",
    )
    parser.add_argument(
        "--secret-access-key",
        default=os.environ.get("AWS_SECRET_ACCESS_KEY"),
        help="Secret access key of the base credential (defaults to AWS_SECRET_ACCESS_KEY)",
    )
    parser.add_argument(
        "--session-token",
        default=os.environ.get("AWS_SESSION_TOKEN"),
        help="Optional session token when the base credential is temporary",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
        help="AWS region for discovery, role assumption and regional checks",
    )
    parser.add_argument(
        "--audit-role",
        dest="audit_role",
        help="Audit role ARN template, e.g. arn:aws:iam::111111111111:role/SecurityAudit",
    )
    parser.add_argument(
        "--test-connection",
        action="store_true",
        help="Only verify that the base credential is accepted and exit",
    )
    parser.add_argument("--json", dest="json_path", help="Optional path to export findings as JSON")
    parser.add_argument("--csv", dest="csv_path", help="Optional path to export findings as CSV")
    parser.add_argument(
        "--excel",
        dest="excel_path",
        help="Optional path to export findings as an Excel workbook (.xlsx)",
    )
    parser.add_argument("--s3-bucket", help="Upload the JSON report to this S3 bucket")
    parser.add_argument("--s3-prefix", default="", help="Key prefix for the uploaded report")
    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Maximum number of checks run concurrently per account",
    )
    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Stop starting new accounts and checks after this many seconds",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def validate_credentials(access_key_id: Optional[str], secret_access_key: Optional[str]) -> List[str]:
    """Return human readable problems with the supplied key pair."""

    errors: List[str] = []
    if not access_key_id:
        errors.append("Access Key ID is required.")
    elif not ACCESS_KEY_PATTERN.match(access_key_id):
        errors.append(
            "Access Key ID format is invalid. It must be exactly 20 characters, start "
            "with 'AKIA' (or 'ASIA' for temporary keys) and contain only uppercase "
            "letters and numbers."
        )
    if not secret_access_key:
        errors.append("Secret Access Key is required.")
    elif len(secret_access_key) != SECRET_KEY_LENGTH:
        errors.append(f"Secret Access Key must be exactly {SECRET_KEY_LENGTH} characters.")
    return errors


def _log_progress(progress: Progress) -> None:
    logger.info(
        "Accounts: %d/%d, findings: %d",
        progress.accounts_processed,
        progress.total_accounts,
        progress.findings_so_far,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point used by ``python -m aws_org_assessment``."""

    args = parse_args(argv)
    configure_logging(args.log_level)

    errors = validate_credentials(args.access_key_id, args.secret_access_key)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    credentials = AwsCredentials(
        access_key_id=args.access_key_id,
        secret_access_key=args.secret_access_key,
        region=args.region,
        session_token=args.session_token or None,
    )

    if args.test_connection:
        if check_connection(credentials, client_config=client_config()):
            print("Connection test successful! Credentials are valid.")
            return 0
        print("Connection test failed. Please verify your credentials.", file=sys.stderr)
        return 1

    try:
        config = AssessmentConfig(
            audit_role_template=args.audit_role or "",
            region=args.region,
            max_workers=args.max_workers,
            deadline_seconds=args.deadline,
        )
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    results = run_assessment(credentials, config, on_progress=_log_progress)
    findings = results.findings
    print_findings(findings)
    counts = summarize(findings)
    print(
        f"\n{results.status_message} "
        f"(PASS: {counts['PASS']}, WARN: {counts['WARN']}, FAIL: {counts['FAIL']})"
    )

    if args.json_path:
        try:
            export_json(findings, args.json_path)
        except OSError as exc:
            print(f"Failed to export JSON report: {exc}", file=sys.stderr)
        else:
            print(f"Findings exported to {args.json_path}")

    if args.csv_path:
        try:
            export_csv(to_rows(findings), args.csv_path)
        except OSError as exc:
            print(f"Failed to export CSV report: {exc}", file=sys.stderr)
        else:
            print(f"CSV report written to {args.csv_path}")

    if args.excel_path:
        try:
            path = export_excel(to_rows(findings), args.excel_path)
        except (RuntimeError, OSError) as exc:
            print(f"Failed to export Excel report: {exc}", file=sys.stderr)
        else:
            print(f"Excel report written to {path}")

    if args.s3_bucket:
        try:
            key = upload_to_s3(findings, args.s3_bucket, args.s3_prefix, credentials.session())
        except (BotoCoreError, ClientError, ValueError) as exc:
            print(f"Failed to upload report to S3: {exc}", file=sys.stderr)
        else:
            print(f"Report uploaded to s3://{args.s3_bucket}/{key}")

    return 0 if results.completed else 2


__all__ = ["main", "parse_args", "validate_credentials"]
