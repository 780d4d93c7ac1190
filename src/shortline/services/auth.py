"""Authorization gate in front of every data operation.

Two distinct checks:
- authenticate(): identity, the presented credential must match the user's
- exists(): existence only, for checks such as "the followee is registered"
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shortline.core.errors import ErrorCode, ForbiddenError, NotFoundError
from shortline.core.model import User
from shortline.core.result import operation

if TYPE_CHECKING:
    from shortline.services.users import UserStore

logger = logging.getLogger(__name__)


class AuthGate:
    """Credential and existence checks backed by the UserStore."""

    def __init__(self, users: UserStore):
        self.users = users

    @operation
    async def authenticate(self, user_id: str, pwd: str) -> User:
        """Return the user if the credential matches.

        UserStore.get reports a wrong id and a wrong credential alike as
        NotFound; a separate existence check tells them apart here.
        """
        result = await self.users.get(user_id, pwd)
        if result.is_ok:
            return result.unwrap()

        if result.error == ErrorCode.NOT_FOUND:
            if (await self.users.exists(user_id)).unwrap():
                logger.info(f"Credential mismatch for user {user_id}")
                raise ForbiddenError(f"Invalid credential for user '{user_id}'")
            raise NotFoundError("User", user_id)

        return result.unwrap()

    @operation
    async def exists(self, user_id: str) -> None:
        """Succeed iff the user id is registered."""
        if not (await self.users.exists(user_id)).unwrap():
            raise NotFoundError("User", user_id)
