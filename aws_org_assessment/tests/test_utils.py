"""Tests for pagination and client helpers."""

from __future__ import annotations

import threading

import pytest

from aws_org_assessment.utils import (
    AssessmentCancelled,
    error_code,
    paginate,
    safe_paginate,
    scoped_client,
)

from .fakes import FakeClient, FakeSession, client_error


def _token_pages(total: int, page_size: int) -> FakeClient:
    items = list(range(total))
    pages = []
    for start in range(0, total, page_size):
        page = {"Items": items[start : start + page_size]}
        if start + page_size < total:
            page["NextToken"] = f"token-{start + page_size}"
        pages.append(page)
    return FakeClient("fake", {"list_items": pages or [{"Items": []}]})


@pytest.mark.parametrize(
    ("total", "page_size"), [(0, 5), (1, 5), (5, 5), (23, 5), (23, 1), (100, 7)]
)
def test_paginate_returns_every_item_exactly_once(total: int, page_size: int) -> None:
    client = _token_pages(total, page_size)

    items = list(paginate(client.list_items, "Items"))

    assert items == list(range(total))
    expected_pages = max(1, -(-total // page_size))
    assert len(client.calls["list_items"]) == expected_pages


def test_paginate_passes_previous_token_and_original_params() -> None:
    client = _token_pages(10, 4)

    list(paginate(client.list_items, "Items", Filter="x"))

    calls = client.calls["list_items"]
    assert calls[0] == {"Filter": "x"}
    assert calls[1] == {"Filter": "x", "NextToken": "token-4"}
    assert calls[2] == {"Filter": "x", "NextToken": "token-8"}


def test_paginate_treats_empty_string_token_as_last_page() -> None:
    client = FakeClient(
        "fake",
        {"list_items": [{"Items": [1], "NextToken": "a"}, {"Items": [2], "NextToken": ""}]},
    )

    assert list(paginate(client.list_items, "Items")) == [1, 2]
    assert len(client.calls["list_items"]) == 2


def test_paginate_supports_truncated_marker_style() -> None:
    client = FakeClient(
        "iam",
        {
            "list_users": [
                {"Users": ["a", "b"], "IsTruncated": True, "Marker": "m1"},
                {"Users": ["c"], "IsTruncated": True, "Marker": "m2"},
                {"Users": ["d"], "IsTruncated": False, "Marker": "ignored"},
            ]
        },
    )

    users = list(
        paginate(client.list_users, "Users", token_key="Marker", truncated_key="IsTruncated")
    )

    assert users == ["a", "b", "c", "d"]
    assert client.calls["list_users"][1] == {"Marker": "m1"}
    assert len(client.calls["list_users"]) == 3


def test_paginate_can_rename_the_request_token() -> None:
    client = FakeClient(
        "kms",
        {
            "list_keys": [
                {"Keys": [1], "Truncated": True, "NextMarker": "n1"},
                {"Keys": [2], "Truncated": False},
            ]
        },
    )

    keys = list(
        paginate(
            client.list_keys,
            "Keys",
            token_key="NextMarker",
            request_token_key="Marker",
            truncated_key="Truncated",
        )
    )

    assert keys == [1, 2]
    assert client.calls["list_keys"][1] == {"Marker": "n1"}


def test_paginate_restarts_from_first_page_on_each_call() -> None:
    client = _token_pages(6, 3)

    first = list(paginate(client.list_items, "Items"))
    calls_after_first = len(client.calls["list_items"])
    client.calls.clear()
    second = list(paginate(client.list_items, "Items"))

    assert calls_after_first == 2
    assert client.calls["list_items"][0] == {}
    assert first == second == [0, 1, 2, 3, 4, 5]


def test_paginate_propagates_errors_to_the_caller() -> None:
    client = FakeClient("fake", {"list_items": client_error("Throttling")})

    with pytest.raises(Exception) as excinfo:
        list(paginate(client.list_items, "Items"))

    assert error_code(excinfo.value) == "Throttling"


def test_safe_paginate_falls_back_to_single_call() -> None:
    client = FakeClient("logs", {"describe_log_groups": {"logGroups": [{"logGroupName": "a"}]}})

    groups = list(safe_paginate(client, "describe_log_groups", "logGroups"))

    assert groups == [{"logGroupName": "a"}]


def test_scoped_client_closes_client_on_error() -> None:
    client = FakeClient("s3")
    session = FakeSession({"s3": client})

    with pytest.raises(RuntimeError):
        with scoped_client(session, "s3", "us-east-1"):
            raise RuntimeError("boom")

    assert client.closed


def test_error_code_ignores_non_client_errors() -> None:
    assert error_code(client_error("AccessDenied")) == "AccessDenied"
    assert error_code(ValueError("x")) == ""


def test_scoped_client_is_not_created_after_cancellation() -> None:
    session = FakeSession({"s3": FakeClient("s3")})
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(AssessmentCancelled):
        with scoped_client(session, "s3", cancel_event=cancel):
            pass

    assert session.requested == []


def test_calls_after_cancellation_raise_and_client_is_closed() -> None:
    client = FakeClient("ec2", {"describe_vpcs": {"Vpcs": []}})
    cancel = threading.Event()

    with pytest.raises(AssessmentCancelled):
        with scoped_client(FakeSession({"ec2": client}), "ec2", cancel_event=cancel) as ec2:
            ec2.describe_vpcs()
            cancel.set()
            ec2.describe_vpcs()

    assert len(client.calls["describe_vpcs"]) == 1
    assert client.closed


def test_paginate_stops_between_pages_after_cancellation() -> None:
    client = _token_pages(9, 3)
    cancel = threading.Event()
    seen = []

    with pytest.raises(AssessmentCancelled):
        with scoped_client(FakeSession({"fake": client}), "fake", cancel_event=cancel) as fake:
            for item in paginate(fake.list_items, "Items"):
                seen.append(item)
                cancel.set()

    assert seen == [0, 1, 2]
    assert len(client.calls["list_items"]) == 1


def test_safe_paginate_uses_native_paginator_and_honours_cancellation() -> None:
    client = FakeClient(
        "ec2",
        pages={"describe_vpcs": [{"Vpcs": ["a"]}, {"Vpcs": ["b"]}, {"Vpcs": ["c"]}]},
    )
    cancel = threading.Event()
    seen = []

    with pytest.raises(AssessmentCancelled):
        with scoped_client(FakeSession({"ec2": client}), "ec2", cancel_event=cancel) as ec2:
            for vpc in safe_paginate(ec2, "describe_vpcs", "Vpcs"):
                seen.append(vpc)
                cancel.set()

    assert seen == ["a"]
    assert client.pages_served["describe_vpcs"] == 1


def test_safe_paginate_drains_native_paginator() -> None:
    client = FakeClient("ec2", pages={"describe_vpcs": [{"Vpcs": ["a"]}, {"Vpcs": ["b"]}]})

    assert list(safe_paginate(client, "describe_vpcs", "Vpcs")) == ["a", "b"]
