import logging
from abc import ABC, abstractmethod
from typing import Optional

from planify.domain import User
from planify.errors import AuthenticationError
from planify.store import EntityStore

logger = logging.getLogger(__name__)


def require_actor(actor_email: Optional[str]) -> str:
    if not actor_email:
        raise AuthenticationError("no authenticated user")
    return actor_email


class ActorResolver(ABC):
    @abstractmethod
    async def who_am_i(self) -> User:
        pass


class SessionActorResolver(ActorResolver):
    """Resolves the email bound to a session into its ``User`` record."""

    def __init__(self, users: EntityStore, email: Optional[str]):
        self._users = users
        self._email = email

    async def who_am_i(self) -> User:
        email = require_actor(self._email)
        matches = await self._users.filter({"email": email})
        if not matches:
            logger.warning("session email %s has no user record", email)
            raise AuthenticationError(f"unknown user {email}")
        return matches[0]
