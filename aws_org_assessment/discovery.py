"""AWS Organizations account discovery."""
from __future__ import annotations

import logging
from typing import List, Optional

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import AwsCredentials
from .findings import Account, AccountStatus
from .utils import paginate, scoped_client

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """Raised when the organization account roster cannot be built."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Failed to discover accounts: {cause}")
        self.cause = cause


def account_from_response(item: dict) -> Account:
    return Account(
        id=item.get("Id", ""),
        name=item.get("Name", ""),
        email=item.get("Email", ""),
        status=AccountStatus.parse(item.get("Status")),
    )


def discover_accounts(
    base_credentials: AwsCredentials, *, client_config: Optional[Config] = None
) -> List[Account]:
    """Return every ACTIVE account of the organization in listing order.

    Suspended and closing accounts are dropped silently. Any AWS error is
    raised as :class:`DiscoveryError`.
    """

    accounts: List[Account] = []
    skipped = 0
    try:
        with scoped_client(
            base_credentials.session(),
            "organizations",
            base_credentials.region,
            client_config,
        ) as org:
            for item in paginate(org.list_accounts, "Accounts"):
                account = account_from_response(item)
                if account.is_active:
                    accounts.append(account)
                else:
                    skipped += 1
    except (ClientError, BotoCoreError) as exc:
        raise DiscoveryError(exc) from exc

    logger.info(
        "Discovered %d active accounts (%d inactive skipped)", len(accounts), skipped
    )
    return accounts


__all__ = ["DiscoveryError", "account_from_response", "discover_accounts"]
