"""Notification sink and the event handlers feeding it.

Notifications are informational: a failed write is logged and dropped, it
never fails the flow that triggered it.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from planify.domain import Notification
from planify.errors import PermissionDeniedError
from planify.events import (
    BUDGET_ALERT,
    COLLABORATION_INVITED,
    COLLABORATION_RESPONDED,
    EXPENSE_RECORDED,
    GOAL_PROGRESS,
    Event,
    EventBus,
)
from planify.store import EntityStore

logger = logging.getLogger(__name__)

ENTITY_LABELS = {"budget": "budget", "goal": "goal", "expense": "expense", "income": "income"}


class NotificationSink:
    def __init__(self, store: EntityStore):
        self.store = store

    async def notify(
        self,
        recipient_email: str,
        title: str,
        message: str,
        kind: str = "alert",
        link: Optional[str] = None,
    ) -> Optional[Notification]:
        try:
            return await self.store.create({
                "user_email": recipient_email,
                "title": title,
                "message": message,
                "type": kind,
                "link": link,
                "is_read": False,
            })
        except Exception as e:
            logger.error("could not notify %s (%s): %s", recipient_email, kind, e)
            return None

    async def for_user(self, email: str, unread_only: bool = False) -> List[Notification]:
        fields = {"user_email": email}
        if unread_only:
            fields["is_read"] = False
        return await self.store.filter(fields, sort="-created_date")

    async def mark_read(self, actor_email: str, notification_id: str) -> Notification:
        notification = await self.store.get(notification_id)
        if notification.user_email != actor_email:
            raise PermissionDeniedError(f"notification {notification_id} belongs to another user")
        if notification.is_read:
            return notification
        return await self.store.update(notification_id, {"is_read": True})

    async def mark_all_read(self, actor_email: str) -> int:
        unread = await self.for_user(actor_email, unread_only=True)
        for notification in unread:
            await self.store.update(notification.id, {"is_read": True})
        return len(unread)


def goal_progress_message(goal_title: str, percentage: Decimal) -> str:
    return f'Great! You have reached {percentage:.0f}% of your goal "{goal_title}"'


def shared_expense_message(payer_name: str, expense_title: str, amount: Decimal, share: Decimal) -> str:
    return (
        f'{payer_name} added you to an expense of {amount:.2f} ({expense_title}). '
        f'Your share is {share:.2f}.'
    )


def invitation_message(inviter_name: str, entity_type: str, entity_name: str) -> str:
    label = ENTITY_LABELS.get(entity_type, entity_type)
    return f"{inviter_name} invited you to collaborate on the {label} '{entity_name}'."


def register_notification_handlers(bus: EventBus, sink: NotificationSink) -> None:
    """Turn domain events into notifications for the counterpart user."""

    async def on_expense_recorded(event: Event, payload: dict) -> dict:
        expense = payload["expense"]
        payer = payload.get("actor_name") or expense.paid_by
        notified = []
        for share in expense.shared_with:
            await sink.notify(
                share.email,
                "Shared expense",
                shared_expense_message(payer, expense.title, expense.amount, share.amount),
                "new_expense",
                "/expenses",
            )
            notified.append(share.email)
        return {"notified": notified}

    async def on_budget_alert(event: Event, payload: dict) -> dict:
        budget = payload["budget"]
        alert = payload["alert"]
        await sink.notify(budget.created_by, "Budget alert", alert.message, "alert", "/budgets")
        return {"notified": [budget.created_by]}

    async def on_goal_progress(event: Event, payload: dict) -> dict:
        goal = payload["goal"]
        await sink.notify(
            goal.created_by,
            "Goal progress",
            goal_progress_message(goal.title, goal.progress_percent),
            "goal_update",
            "/goals",
        )
        return {"notified": [goal.created_by]}

    async def on_invited(event: Event, payload: dict) -> dict:
        collab = payload["collaboration"]
        await sink.notify(
            collab.collaborator_email,
            "Collaboration invitation",
            invitation_message(payload["inviter_name"], collab.entity_type, payload["entity_name"]),
            "invite",
            "/collaborate",
        )
        return {"notified": [collab.collaborator_email]}

    async def on_responded(event: Event, payload: dict) -> dict:
        collab = payload["collaboration"]
        verb = "accepted" if collab.status == "accepted" else "declined"
        await sink.notify(
            collab.owner_email,
            "Invitation answered",
            f"{collab.collaborator_email} {verb} your invitation.",
            "invite",
            "/collaborate",
        )
        return {"notified": [collab.owner_email]}

    bus.subscribe(EXPENSE_RECORDED, on_expense_recorded)
    bus.subscribe(BUDGET_ALERT, on_budget_alert)
    bus.subscribe(GOAL_PROGRESS, on_goal_progress)
    bus.subscribe(COLLABORATION_INVITED, on_invited)
    bus.subscribe(COLLABORATION_RESPONDED, on_responded)
