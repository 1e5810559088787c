"""Authorization for shared entities.

An actor may act on a budget, goal, expense or income when they own it
(``created_by``) or hold an accepted collaboration whose permission level is at
least the level the operation requires. Lookups fail closed: any error
while resolving the entity or its grants is logged and treated as a denial.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional

from planify.domain import PERMISSION_LEVELS, EntityAccess
from planify.errors import NotFoundError, PermissionDeniedError, ValidationError
from planify.identity import require_actor
from planify.store import StoreRegistry

logger = logging.getLogger(__name__)


def permission_rank(level: str) -> int:
    """Rank of a stored grant level; unknown levels rank below ``view``."""
    return PERMISSION_LEVELS.get(level, 0)


def _required_rank(level: str) -> int:
    if level not in PERMISSION_LEVELS:
        raise ValidationError(f"unknown permission level: {level!r}")
    return PERMISSION_LEVELS[level]


class AccessControl:
    def __init__(self, registry: StoreRegistry):
        self.registry = registry

    async def accepted_grant(self, actor_email: str, entity_type: str, entity_id: str):
        """First accepted collaboration of ``actor_email`` on the entity, or None.

        At most one active grant per (entity, collaborator) is expected; when
        the store holds several, the first one returned wins.
        """
        grants = await self.registry.collaborations.filter({
            "entity_type": entity_type,
            "entity_id": entity_id,
            "collaborator_email": actor_email,
            "status": "accepted",
        })
        return grants[0] if grants else None

    async def can_access(
        self,
        actor_email: Optional[str],
        entity_type: str,
        entity_id: str,
        required_permission: str = "view",
    ) -> bool:
        actor_email = require_actor(actor_email)
        store = self.registry.store_for(entity_type)
        required = _required_rank(required_permission)

        try:
            entity = await store.get(entity_id)
            if entity.created_by == actor_email:
                return True
            grant = await self.accepted_grant(actor_email, entity_type, entity_id)
        except Exception as e:
            logger.warning(
                "access to %s %s denied for %s: lookup failed: %s",
                entity_type, entity_id, actor_email, e,
            )
            return False

        if grant is None:
            return False
        return permission_rank(grant.permission_level) >= required

    async def secure_operation(
        self,
        actor_email: Optional[str],
        entity_type: str,
        entity_id: str,
        operation: Callable[[], Any],
        required_permission: str = "edit",
    ) -> Any:
        """Run ``operation`` only when the actor holds ``required_permission``.

        ``operation`` takes no arguments and may return an awaitable. Its
        result and its errors pass through untouched.
        """
        if not await self.can_access(actor_email, entity_type, entity_id, required_permission):
            raise PermissionDeniedError(
                f"{actor_email} may not {required_permission} {entity_type} {entity_id}"
            )
        result = operation()
        if inspect.isawaitable(result):
            result = await result
        return result

    async def list_user_entities(self, actor_email: Optional[str], entity_type: str) -> List[EntityAccess]:
        """Entities the actor owns, followed by those shared with them.

        Shared entities come in collaboration order, tagged with the grant
        level. A shared entity that no longer exists is left out.
        """
        actor_email = require_actor(actor_email)
        store = self.registry.store_for(entity_type)

        owned = await store.filter({"created_by": actor_email})
        grants = await self.registry.collaborations.filter({
            "entity_type": entity_type,
            "collaborator_email": actor_email,
            "status": "accepted",
        })

        async def resolve(grant):
            try:
                entity = await store.get(grant.entity_id)
            except NotFoundError:
                logger.info(
                    "dropping shared %s %s: entity no longer exists",
                    entity_type, grant.entity_id,
                )
                return None
            return EntityAccess(entity=entity, is_shared=True, permission=grant.permission_level)

        shared = await asyncio.gather(*(resolve(g) for g in grants))

        return [EntityAccess(entity=e) for e in owned] + [s for s in shared if s is not None]
