"""Collaboration grants: invite, answer, revoke.

A grant starts ``pending``, is answered once by the invited user (``accepted``
or ``rejected``) and can be deleted by the owner at any time.
"""

import logging
from datetime import date
from typing import List, Optional

from planify.domain import (
    COLLABORATION_STATUSES,
    ENTITY_TYPES,
    PERMISSION_LEVELS,
    Collaboration,
    User,
    display_name,
)
from planify.errors import PermissionDeniedError, ValidationError
from planify.events import COLLABORATION_INVITED, COLLABORATION_RESPONDED, EventBus
from planify.identity import require_actor
from planify.store import StoreRegistry

logger = logging.getLogger(__name__)

ANSWERS = ("accepted", "rejected")


class CollaborationService:
    def __init__(self, registry: StoreRegistry, bus: Optional[EventBus] = None):
        self.registry = registry
        self.bus = bus or EventBus()

    @property
    def store(self):
        return self.registry.collaborations

    async def invite(
        self,
        owner: User,
        entity_type: str,
        entity_id: str,
        collaborator_email: str,
        permission_level: str = "view",
    ) -> Collaboration:
        require_actor(owner and owner.email)
        if entity_type not in ENTITY_TYPES:
            raise ValidationError(f"unknown entity type: {entity_type!r}")
        if permission_level not in PERMISSION_LEVELS:
            raise ValidationError(f"unknown permission level: {permission_level!r}")
        if not collaborator_email:
            raise ValidationError("collaborator email is required")
        if collaborator_email == owner.email:
            raise ValidationError("cannot invite yourself")

        entity = await self.registry.store_for(entity_type).get(entity_id)
        if entity.created_by != owner.email:
            raise PermissionDeniedError(f"only the owner can share {entity_type} {entity_id}")

        existing = await self.store.filter({
            "entity_type": entity_type,
            "entity_id": entity_id,
            "collaborator_email": collaborator_email,
        })
        if any(c.status in ("pending", "accepted") for c in existing):
            raise ValidationError(f"{collaborator_email} already has access to {entity_type} {entity_id}")

        collaboration = await self.store.create({
            "entity_type": entity_type,
            "entity_id": entity_id,
            "owner_email": owner.email,
            "collaborator_email": collaborator_email,
            "permission_level": permission_level,
            "status": "pending",
            "invited_date": date.today().isoformat(),
        })
        logger.info(
            "%s invited %s to %s %s (%s)",
            owner.email, collaborator_email, entity_type, entity_id, permission_level,
        )
        await self.bus.publish(COLLABORATION_INVITED, {
            "collaboration": collaboration,
            "inviter_name": owner.full_name or owner.email,
            "entity_name": display_name(entity),
        })
        return collaboration

    async def respond(self, actor_email: str, collaboration_id: str, status: str) -> Collaboration:
        actor_email = require_actor(actor_email)
        if status not in ANSWERS:
            raise ValidationError(f"invalid answer: {status!r}")

        collaboration = await self.store.get(collaboration_id)
        if collaboration.collaborator_email != actor_email:
            raise PermissionDeniedError("only the invited user can answer an invitation")
        if collaboration.status != "pending":
            raise ValidationError(f"invitation already {collaboration.status}")

        collaboration = await self.store.update(collaboration_id, {"status": status})
        logger.info("%s %s collaboration %s", actor_email, status, collaboration_id)
        await self.bus.publish(COLLABORATION_RESPONDED, {"collaboration": collaboration})
        return collaboration

    async def accept(self, actor_email: str, collaboration_id: str) -> Collaboration:
        return await self.respond(actor_email, collaboration_id, "accepted")

    async def reject(self, actor_email: str, collaboration_id: str) -> Collaboration:
        return await self.respond(actor_email, collaboration_id, "rejected")

    async def revoke(self, actor_email: str, collaboration_id: str) -> None:
        actor_email = require_actor(actor_email)
        collaboration = await self.store.get(collaboration_id)
        if collaboration.owner_email != actor_email:
            raise PermissionDeniedError("only the owner can revoke a collaboration")
        await self.store.delete(collaboration_id)
        logger.info("%s revoked collaboration %s", actor_email, collaboration_id)

    async def received(self, actor_email: str, status: Optional[str] = None) -> List[Collaboration]:
        fields = {"collaborator_email": require_actor(actor_email)}
        if status is not None:
            if status not in COLLABORATION_STATUSES:
                raise ValidationError(f"unknown collaboration status: {status!r}")
            fields["status"] = status
        return await self.store.filter(fields)

    async def sent(self, actor_email: str) -> List[Collaboration]:
        return await self.store.filter({"owner_email": require_actor(actor_email)})
