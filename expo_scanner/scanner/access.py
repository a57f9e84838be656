"""
==============================================================================
Access Validator Module
==============================================================================

Decides whether a scanner link may open a scanning session.

Check order:
-----------
1. No access record for the identity      -> NOT_FOUND
2. Token differs from the record's token  -> TOKEN_MISMATCH
3. Record is deactivated                  -> DEACTIVATED
4. Otherwise                              -> Granted(record)

The validator never touches the camera. It must complete before the
camera session manager is asked for a stream.

==============================================================================
"""

from __future__ import annotations

import logging
import secrets
from typing import Dict, Iterable, Optional, Protocol

from expo_scanner.core import exceptions
from expo_scanner.core.exceptions import AppException
from expo_scanner.scanner.models import (
    AccessDecision,
    AccessDenialReason,
    Denied,
    ExhibitorAccess,
    Granted,
)


# Module logger
logger = logging.getLogger(__name__)


class AccessLookup(Protocol):
    """Read-only access record source; called once per validation."""

    def lookup_access(self, identity: str) -> Optional[ExhibitorAccess]:
        ...


class InMemoryAccessLookup:
    """Access lookup over a fixed snapshot of records."""

    def __init__(self, records: Iterable[ExhibitorAccess] = ()) -> None:
        self._records: Dict[str, ExhibitorAccess] = {
            record.exhibitor_id: record for record in records
        }

    def lookup_access(self, identity: str) -> Optional[ExhibitorAccess]:
        return self._records.get(identity)


class AccessValidator:
    """
    Access gate for scanning sessions.

    Example:
        >>> validator = AccessValidator(InMemoryAccessLookup([
        ...     ExhibitorAccess(exhibitor_id="exhibitor-1", token="secure-token-abc123")
        ... ]))
        >>> validator.validate("exhibitor-1", "wrong")
        Denied(reason=<AccessDenialReason.TOKEN_MISMATCH: 'token_mismatch'>)
    """

    def __init__(self, lookup: AccessLookup) -> None:
        self._lookup = lookup

    def validate(self, identity: Optional[str], token: Optional[str]) -> AccessDecision:
        """
        Validate a scanner link.

        Args:
            identity: Exhibitor id (path segment of the link)
            token: Secure token (query parameter of the link)

        Returns:
            Granted carrying the access record, or Denied with the reason
        """
        if not identity:
            return Denied(reason=AccessDenialReason.NOT_FOUND)

        record = self._lookup.lookup_access(identity)
        if record is None:
            return Denied(reason=AccessDenialReason.NOT_FOUND)

        if not token or not secrets.compare_digest(
            record.token.encode("utf-8"), token.encode("utf-8")
        ):
            return Denied(reason=AccessDenialReason.TOKEN_MISMATCH)

        if not record.is_active:
            return Denied(reason=AccessDenialReason.DEACTIVATED)

        return Granted(access=record)

    def validate_or_raise(self, identity: Optional[str], token: Optional[str]) -> ExhibitorAccess:
        """
        Validate and raise the matching AppException on denial.

        Raises:
            AppException: ACCESS_NOT_FOUND, ACCESS_TOKEN_MISMATCH or
                ACCESS_DEACTIVATED
        """
        decision = self.validate(identity, token)
        if isinstance(decision, Granted):
            return decision.access

        logger.warning(f"🚫 Scanner access denied for {identity!r}: {decision.reason}")
        raise denial_exception(decision.reason, identity)


def denial_exception(reason: AccessDenialReason, identity: Optional[str] = None) -> AppException:
    """Map a denial reason to its distinct AppException."""
    factories = {
        AccessDenialReason.NOT_FOUND: exceptions.access_not_found,
        AccessDenialReason.TOKEN_MISMATCH: exceptions.access_token_mismatch,
        AccessDenialReason.DEACTIVATED: exceptions.access_deactivated,
    }
    return factories[reason](identity)
