"""Ledger services: the entry points UI handlers call.

They validate input, route mutations of existing records through
``AccessControl.secure_operation``, keep budget aggregates fresh after every
expense change and publish domain events for notifications.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from planify.access import AccessControl
from planify.budgets import BudgetAlert, BudgetRecalculator, evaluate_alerts
from planify.domain import ZERO, Budget, BudgetCategory, Expense, Goal, Income, User
from planify.errors import ValidationError
from planify.events import BUDGET_ALERT, EXPENSE_RECORDED, GOAL_PROGRESS, EventBus
from planify.identity import require_actor
from planify.store import StoreRegistry
from planify.transforms import month_of, split_equally
from planify.validation import (
    ensure_valid,
    validate_budget,
    validate_expense,
    validate_goal,
    validate_income,
)

logger = logging.getLogger(__name__)

EXPENSE_EDITABLE = {"title", "amount", "category", "date", "budget_id", "goal_id", "paid_by"}
BUDGET_EDITABLE = {"name", "month", "total_amount", "categories"}
GOAL_EDITABLE = {"title", "target_amount", "current_amount", "deadline", "category"}
INCOME_EDITABLE = {"title", "amount", "category", "date", "is_recurring", "frequency"}
BUDGET_DERIVED = {"current_spent"}


def _reject_fields(fields: Mapping[str, Any], allowed: set, entity_type: str) -> None:
    extra = set(fields) - allowed
    if extra:
        raise ValidationError(f"cannot set {sorted(extra)} on {entity_type}")


def normalize_categories(raw: Iterable[Any]) -> tuple:
    """Budget category lines with a zero ``spent``; recompute fills it in."""
    lines = []
    for item in raw or ():
        if isinstance(item, BudgetCategory):
            name, limit = item.name, item.limit
        else:
            name, limit = item.get("name"), item.get("limit", 0)
        if not name:
            raise ValidationError("budget category needs a name")
        limit = Decimal(str(limit))
        if limit < 0:
            raise ValidationError(f"category {name} has a negative limit")
        lines.append(BudgetCategory(name=name, limit=limit, spent=ZERO))
    return tuple(lines)


class ExpenseService:
    def __init__(
        self,
        registry: StoreRegistry,
        access: AccessControl,
        recalculator: BudgetRecalculator,
        bus: Optional[EventBus] = None,
    ):
        self.registry = registry
        self.access = access
        self.recalculator = recalculator
        self.bus = bus or EventBus()

    async def refresh_budgets(self, owner_email: str, months: Sequence[str]) -> List[BudgetAlert]:
        """Recompute the owner's budgets for each month and publish their alerts."""
        alerts = []
        for month in dict.fromkeys(months):
            for budget in await self.recalculator.recompute(owner_email, month):
                for alert in evaluate_alerts(budget):
                    await self.bus.publish(BUDGET_ALERT, {"budget": budget, "alert": alert})
                    alerts.append(alert)
        return alerts

    async def record_expense(
        self,
        actor: User,
        fields: Mapping[str, Any],
        collaborators: Sequence[str] = (),
    ) -> Expense:
        require_actor(actor and actor.email)
        _reject_fields(fields, EXPENSE_EDITABLE, "expense")
        clean = ensure_valid(validate_expense(fields))

        others = [email for email in dict.fromkeys(collaborators) if email and email != actor.email]
        clean["shared_with"] = split_equally(clean["amount"], others)
        clean["created_by"] = actor.email
        clean["paid_by"] = clean.get("paid_by") or actor.email

        expense = await self.registry.expenses.create(clean)
        logger.info("%s recorded expense %s (%s)", actor.email, expense.id, expense.amount)

        await self.refresh_budgets(expense.created_by, [month_of(expense.date)])
        await self.bus.publish(EXPENSE_RECORDED, {
            "expense": expense,
            "actor_name": actor.full_name or actor.email,
        })
        return expense

    async def update_expense(self, actor_email: str, expense_id: str, fields: Mapping[str, Any]) -> Expense:
        _reject_fields(fields, EXPENSE_EDITABLE, "expense")

        async def apply():
            before = await self.registry.expenses.get(expense_id)
            merged = {
                "title": before.title,
                "amount": before.amount,
                "category": before.category,
                "date": before.date,
                **fields,
            }
            clean = ensure_valid(validate_expense(merged))
            changes = {name: clean[name] for name in fields}
            if "amount" in changes and before.shared_with:
                changes["shared_with"] = split_equally(
                    changes["amount"], [s.email for s in before.shared_with]
                )
            after = await self.registry.expenses.update(expense_id, changes)
            await self.refresh_budgets(after.created_by, [month_of(before.date), month_of(after.date)])
            return after

        return await self.access.secure_operation(actor_email, "expense", expense_id, apply, "edit")

    async def delete_expense(self, actor_email: str, expense_id: str) -> Expense:
        async def apply():
            expense = await self.registry.expenses.get(expense_id)
            await self.registry.expenses.delete(expense_id)
            await self.refresh_budgets(expense.created_by, [month_of(expense.date)])
            return expense

        return await self.access.secure_operation(actor_email, "expense", expense_id, apply, "admin")


class IncomeService:
    def __init__(self, registry: StoreRegistry):
        self.registry = registry

    async def record_income(self, actor: User, fields: Mapping[str, Any]) -> Income:
        require_actor(actor and actor.email)
        _reject_fields(fields, INCOME_EDITABLE, "income")
        clean = ensure_valid(validate_income(fields))
        clean["created_by"] = actor.email
        if not clean.get("is_recurring"):
            clean["frequency"] = None
        return await self.registry.incomes.create(clean)


class PlanningService:
    """Budgets and goals."""

    def __init__(
        self,
        registry: StoreRegistry,
        access: AccessControl,
        recalculator: BudgetRecalculator,
        bus: Optional[EventBus] = None,
    ):
        self.registry = registry
        self.access = access
        self.recalculator = recalculator
        self.bus = bus or EventBus()

    async def _recomputed(self, budget: Budget, months: Sequence[str]) -> Budget:
        refreshed = {}
        for month in dict.fromkeys(months):
            for b in await self.recalculator.recompute(budget.created_by, month):
                refreshed[b.id] = b
        return refreshed.get(budget.id, budget)

    async def create_budget(self, actor: User, fields: Mapping[str, Any]) -> Budget:
        require_actor(actor and actor.email)
        _reject_fields(fields, BUDGET_EDITABLE, "budget")
        clean = ensure_valid(validate_budget(fields))
        clean["categories"] = normalize_categories(clean.get("categories"))
        clean["created_by"] = actor.email
        budget = await self.registry.budgets.create(clean)
        return await self._recomputed(budget, [budget.month])

    async def update_budget(self, actor_email: str, budget_id: str, fields: Mapping[str, Any]) -> Budget:
        # spend aggregates are rebuilt from the ledger, never written by hand
        fields = {k: v for k, v in fields.items() if k not in BUDGET_DERIVED}
        _reject_fields(fields, BUDGET_EDITABLE, "budget")

        async def apply():
            before = await self.registry.budgets.get(budget_id)
            merged = {
                "name": before.name,
                "total_amount": before.total_amount,
                "month": before.month,
                **fields,
            }
            clean = ensure_valid(validate_budget(merged))
            changes = {name: clean[name] for name in fields}
            if "categories" in changes:
                changes["categories"] = normalize_categories(changes["categories"])
            after = await self.registry.budgets.update(budget_id, changes)
            return await self._recomputed(after, [after.month])

        return await self.access.secure_operation(actor_email, "budget", budget_id, apply, "edit")

    async def create_goal(self, actor: User, fields: Mapping[str, Any]) -> Goal:
        require_actor(actor and actor.email)
        _reject_fields(fields, GOAL_EDITABLE, "goal")
        clean = ensure_valid(validate_goal(fields))
        clean["current_amount"] = Decimal(str(clean.get("current_amount") or 0))
        if clean["current_amount"] < 0:
            raise ValidationError("current_amount cannot be negative")
        clean["created_by"] = actor.email
        return await self.registry.goals.create(clean)

    async def update_goal(self, actor_email: str, goal_id: str, fields: Mapping[str, Any]) -> Goal:
        _reject_fields(fields, GOAL_EDITABLE, "goal")

        async def apply():
            before = await self.registry.goals.get(goal_id)
            merged = {
                "title": before.title,
                "target_amount": before.target_amount,
                "deadline": before.deadline,
                **fields,
            }
            clean = ensure_valid(validate_goal(merged))
            changes: Dict[str, Any] = {name: clean[name] for name in fields}
            if "current_amount" in changes:
                changes["current_amount"] = Decimal(str(changes["current_amount"]))
                if changes["current_amount"] < 0:
                    raise ValidationError("current_amount cannot be negative")
            after = await self.registry.goals.update(goal_id, changes)
            if after.current_amount > before.current_amount:
                await self.bus.publish(GOAL_PROGRESS, {"goal": after})
            return after

        return await self.access.secure_operation(actor_email, "goal", goal_id, apply, "edit")

    async def delete_entity(self, actor_email: str, entity_type: str, entity_id: str) -> None:
        if entity_type == "expense":
            # budgets must be recomputed, see ExpenseService.delete_expense
            raise ValidationError("expenses are deleted through ExpenseService")
        store = self.registry.store_for(entity_type)
        await self.access.secure_operation(
            actor_email, entity_type, entity_id, lambda: store.delete(entity_id), "admin"
        )
        logger.info("%s deleted %s %s", actor_email, entity_type, entity_id)
