"""Tests for rendering and exporting findings."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from aws_org_assessment.findings import Account, Finding, FindingStatus, error_finding
from aws_org_assessment.report import (
    CSV_HEADERS,
    DEFAULT_REMEDIATION,
    PASS_REMEDIATION,
    REMEDIATIONS,
    default_report_name,
    export_csv,
    export_excel,
    export_json,
    read_csv,
    recommended_fix,
    to_row,
    to_rows,
    upload_to_s3,
)

from .fakes import FakeClient, FakeSession

ACCOUNT = Account(id="111111111111", name="Prod, \"Main\"")
NOW = datetime(2024, 5, 1, 13, 45, 9, tzinfo=timezone.utc)


def _failed_finding() -> Finding:
    finding = Finding.for_account("S3_BASELINE", ACCOUNT)
    finding.fail("Public bucket detected: data")
    finding.warn("Bucket unencrypted: logs")
    return finding


def _passed_finding() -> Finding:
    finding = Finding.for_account("KMS_BASELINE", ACCOUNT)
    finding.pass_()
    return finding


def test_every_check_has_a_remediation() -> None:
    from aws_org_assessment.checkers import default_checkers

    for checker in default_checkers():
        assert checker.check_name in REMEDIATIONS


def test_recommended_fix_depends_on_status_and_check() -> None:
    assert recommended_fix(_passed_finding()) == PASS_REMEDIATION
    assert recommended_fix(_failed_finding()) == REMEDIATIONS["S3_BASELINE"]
    unknown = Finding(account_id="1", account_name="a", check_name="CUSTOM")
    unknown.warn("something")
    assert recommended_fix(unknown) == DEFAULT_REMEDIATION


def test_row_title_and_details() -> None:
    row = to_row(_failed_finding())

    assert row.title == '[FAIL] S3_BASELINE - Prod, "Main" (111111111111)'
    assert row.details == "Public bucket detected: data; Bucket unencrypted: logs"
    assert row.status == "FAIL"
    assert row.account_id == "111111111111"


def test_error_finding_row_asks_to_verify_credentials() -> None:
    row = to_row(error_finding("N/A", "N/A", "Error: boom"))

    assert row.recommended_fix == REMEDIATIONS["ASSESSMENT_ERROR"]


def test_csv_quotes_commas_and_quotes(tmp_path) -> None:
    path = tmp_path / "report.csv"

    export_csv(to_rows([_failed_finding(), _passed_finding()]), str(path))

    raw = path.read_bytes().decode("utf-8")
    lines = raw.split("\r\n")
    assert lines[0] == ",".join(CSV_HEADERS)
    assert '"[FAIL] S3_BASELINE - Prod, ""Main"" (111111111111)"' in lines[1]
    assert lines[1].endswith(',FAIL,111111111111,"Prod, ""Main"""')

    rows = read_csv(str(path))
    assert [row.status for row in rows] == ["FAIL", "PASS"]
    assert rows[0].account_name == 'Prod, "Main"'
    assert rows[1].details == "Check passed"


def test_csv_message_with_comma_and_quote_survives_round_trip(tmp_path) -> None:
    finding = Finding.for_account("CROSS_ACCOUNT_TRUST", Account(id="1", name="dev"))
    finding.warn('Role "vendor, inc" has external trust with no conditions')
    path = tmp_path / "trust.csv"

    export_csv(to_rows([finding]), str(path))

    assert '"Role ""vendor, inc"" has external trust with no conditions"' in path.read_text(
        encoding="utf-8"
    )
    assert read_csv(str(path))[0].details == finding.messages[0]


def test_read_csv_rejects_foreign_header(tmp_path) -> None:
    path = tmp_path / "other.csv"
    path.write_text("a,b,c\r\n1,2,3\r\n", encoding="utf-8")

    with pytest.raises(ValueError):
        read_csv(str(path))


def test_export_json_writes_finding_dicts(tmp_path) -> None:
    path = tmp_path / "report.json"

    export_json([_failed_finding()], str(path))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data[0]["check_name"] == "S3_BASELINE"
    assert data[0]["status"] == "FAIL"
    assert data[0]["messages"] == ["Public bucket detected: data", "Bucket unencrypted: logs"]


def test_default_report_name_is_timestamped() -> None:
    assert default_report_name(".csv", now=NOW) == "aws_security_assessment_20240501_134509.csv"


def test_upload_to_s3_normalizes_prefix() -> None:
    s3 = FakeClient("s3", {"put_object": {}})

    key = upload_to_s3([_failed_finding()], " reports ", "assessments", FakeSession({"s3": s3}), now=NOW)

    assert key == "assessments/aws_security_assessment_20240501_134509.json"
    call = s3.calls["put_object"][0]
    assert call["Bucket"] == "reports"
    assert call["Key"] == key
    assert call["ContentType"] == "application/json"
    assert json.loads(call["Body"].decode("utf-8"))[0]["account_id"] == "111111111111"
    assert s3.closed


def test_upload_to_s3_requires_bucket() -> None:
    with pytest.raises(ValueError, match="bucket name"):
        upload_to_s3([], "  ", "", FakeSession())


def test_export_excel_writes_sheet(tmp_path) -> None:
    openpyxl = pytest.importorskip("openpyxl")
    path = tmp_path / "report.xlsx"

    export_excel(to_rows([_failed_finding()]), str(path))

    sheet = openpyxl.load_workbook(path).active
    assert sheet.title == "Findings"
    assert tuple(cell.value for cell in sheet[1]) == CSV_HEADERS
    assert sheet.cell(row=2, column=4).value == FindingStatus.FAIL.value
