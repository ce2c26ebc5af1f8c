"""Shared helpers for AWS calls made during an assessment."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, OperationNotPageableError


def paginate(
    fetch: Callable[..., dict],
    items_key: str,
    *,
    token_key: str = "NextToken",
    request_token_key: Optional[str] = None,
    truncated_key: Optional[str] = None,
    **params: Any,
) -> Iterator[Any]:
    """Drain a continuation-token listing API into a single stream of items.

    ``fetch`` is called with ``params`` and, from the second page on, with the
    previous response's ``token_key`` value passed as ``request_token_key``
    (defaults to ``token_key``). Iteration stops when the token is missing or
    empty, or when ``truncated_key`` is given and the response reports it as
    false (the ``IsTruncated``/``Marker`` style used by IAM).
    """

    request_key = request_token_key or token_key
    request = dict(params)
    while True:
        response = fetch(**request)
        for item in response.get(items_key) or []:
            yield item

        token = response.get(token_key)
        if truncated_key is not None and not response.get(truncated_key, False):
            return
        if not token:
            return
        request = dict(params)
        request[request_key] = token


def safe_paginate(client: boto3.client, method_name: str, result_key: str, **kwargs) -> Iterator[dict]:
    """Iterate through paginated boto3 results while handling pagination gaps."""

    try:
        paginator = client.get_paginator(method_name)
    except OperationNotPageableError:
        response = getattr(client, method_name)(**kwargs)
        for item in response.get(result_key, []):
            yield item
        return

    for page in paginator.paginate(**kwargs):
        for item in page.get(result_key, []):
            yield item


class AssessmentCancelled(Exception):
    """Raised inside a checker once the run's cancel event has been set."""


def raise_if_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise AssessmentCancelled("Assessment cancelled")


class _CancellablePaginator:
    def __init__(self, paginator: Any, cancel_event: threading.Event) -> None:
        self._paginator = paginator
        self._cancel_event = cancel_event

    def paginate(self, **kwargs: Any) -> Iterator[dict]:
        pages = iter(self._paginator.paginate(**kwargs))
        while True:
            raise_if_cancelled(self._cancel_event)
            try:
                page = next(pages)
            except StopIteration:
                return
            yield page


class CancellableClient:
    """Wrap a boto3 client so no API call or page fetch starts after cancellation."""

    def __init__(self, client: Any, cancel_event: threading.Event) -> None:
        self._client = client
        self._cancel_event = cancel_event

    def get_paginator(self, operation_name: str) -> _CancellablePaginator:
        return _CancellablePaginator(
            self._client.get_paginator(operation_name), self._cancel_event
        )

    def close(self) -> None:
        self._client.close()

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._client, name)
        if name.startswith("_") or not callable(attr):
            return attr

        def call(*args: Any, **kwargs: Any) -> Any:
            raise_if_cancelled(self._cancel_event)
            return attr(*args, **kwargs)

        return call


@contextmanager
def scoped_client(
    session: boto3.session.Session,
    service: str,
    region: Optional[str] = None,
    config: Optional[Config] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[Any]:
    """Create a boto3 client that is closed when the ``with`` block exits.

    With a ``cancel_event`` every call made through the client first checks
    the event and raises :class:`AssessmentCancelled` once it is set.
    """

    raise_if_cancelled(cancel_event)
    client = session.client(service, region_name=region, config=config)
    try:
        if cancel_event is not None:
            yield CancellableClient(client, cancel_event)
        else:
            yield client
    finally:
        close = getattr(client, "close", None)
        if close is not None:
            close()


def error_code(exc: Exception) -> str:
    """Return the AWS error code from a botocore exception, if present."""

    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "")
    return ""


def http_status(exc: Exception) -> Optional[int]:
    if isinstance(exc, ClientError):
        return exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return None


__all__ = [
    "AssessmentCancelled",
    "CancellableClient",
    "error_code",
    "http_status",
    "paginate",
    "raise_if_cancelled",
    "safe_paginate",
    "scoped_client",
]
