"""Ciphertext access control.

Relation (handle, principal) -> granted. Grant existence is public; what a
grant protects is the right to request decryption of the handle, and, for
the engine principal, the right to keep computing on it.
"""
import copy
import logging
from collections import defaultdict

from src.clo_common.errors import PermissionDeniedError, UnauthorizedError
from src.clo_fhe.types import Ciphertext

logger = logging.getLogger(__name__)


class AccessControl:
    def __init__(self, emergency_admins: frozenset[str] = frozenset()) -> None:
        self._grants: dict[int, set[str]] = defaultdict(set)
        self._emergency_admins = emergency_admins

    def grant(self, handle: int, principal: str) -> None:
        """Idempotent."""
        self._grants[handle].add(principal)

    def grant_all(self, values: list[Ciphertext], principal: str) -> None:
        for value in values:
            self.grant(value.handle, principal)

    def revoke(self, handle: int, principal: str, caller: str) -> bool:
        """Incident-response path; only emergency admins may revoke.

        Returns whether a grant was actually removed.
        """
        if caller not in self._emergency_admins:
            raise UnauthorizedError(caller, "revoke ciphertext grants")
        holders = self._grants.get(handle)
        if not holders or principal not in holders:
            return False
        holders.discard(principal)
        logger.warning(
            "Grant revoked: handle=%#x principal=%s by=%s", handle, principal, caller
        )
        return True

    def has_grant(self, handle: int, principal: str) -> bool:
        holders = self._grants.get(handle)
        return holders is not None and principal in holders

    def require(self, handle: int, principal: str) -> None:
        if not self.has_grant(handle, principal):
            raise PermissionDeniedError(principal, handle)

    def holders(self, handle: int) -> frozenset[str]:
        return frozenset(self._grants.get(handle, ()))

    def is_admin(self, principal: str) -> bool:
        return principal in self._emergency_admins

    def snapshot(self) -> dict[int, set[str]]:
        return copy.deepcopy(dict(self._grants))

    def restore(self, state: dict[int, set[str]]) -> None:
        self._grants = defaultdict(set, state)
