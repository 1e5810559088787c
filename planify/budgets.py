"""Budget aggregates and alerts.

A budget's ``current_spent`` and its category ``spent`` values are caches of
the owner's expense ledger for the budget month. :class:`BudgetRecalculator`
rebuilds them from scratch; :func:`evaluate_alerts` reads them.

Writes are not transactional. Budgets are written one at a time and the first
failed write propagates: later budgets are skipped and earlier writes stay.
Two recomputes racing on the same owner and month may leave a stale total
until the next recompute.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from planify.config import (
    BUDGET_EXCEEDED_PERCENT,
    BUDGET_WARNING_PERCENT,
    CATEGORY_EXCEEDED_PERCENT,
)
from planify.domain import ZERO, Budget, Expense
from planify.store import EntityStore
from planify.transforms import expenses_in_month, month_of, recompute_categories, sum_amounts
from planify.validation import ensure_valid, validate_month

logger = logging.getLogger(__name__)

BUDGET_EXCEEDED = "budget_exceeded"
BUDGET_WARNING = "budget_warning"
CATEGORY_EXCEEDED = "category_exceeded"


@dataclass(frozen=True)
class BudgetAlert:
    kind: str
    message: str
    budget_id: str
    percentage: Decimal
    category: Optional[str] = None


class BudgetRecalculator:
    def __init__(self, budgets: EntityStore, expenses: EntityStore):
        self.budgets = budgets
        self.expenses = expenses

    async def recompute(self, owner_email: str, month: str) -> List[Budget]:
        """Rebuild spend aggregates of every budget ``owner_email`` has for ``month``."""
        month = ensure_valid(validate_month(month))
        budgets = await self.budgets.filter({"created_by": owner_email, "month": month})
        if not budgets:
            return []

        # scope is owner + month, not the expense's budget_id
        history = await self.expenses.filter({"created_by": owner_email})
        monthly = expenses_in_month(history, month)
        total_spent = sum_amounts(monthly)

        updated = []
        for budget in budgets:
            categories = recompute_categories(budget.categories, monthly)
            updated.append(await self.budgets.update(budget.id, {
                "current_spent": total_spent,
                "categories": categories,
            }))
            logger.debug(
                "budget %s recomputed: %s spent over %d expenses",
                budget.id, total_spent, len(monthly),
            )
        return updated

    async def recompute_for_expense(self, expense: Expense) -> List[Budget]:
        return await self.recompute(expense.created_by, month_of(expense.date))


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return part / whole * 100


def evaluate_alerts(budget: Budget) -> List[BudgetAlert]:
    alerts = []
    percentage = _percent(budget.current_spent, budget.total_amount)

    if percentage >= BUDGET_EXCEEDED_PERCENT:
        alerts.append(BudgetAlert(
            kind=BUDGET_EXCEEDED,
            message=f'You have used over 90% of your budget "{budget.name}"',
            budget_id=budget.id,
            percentage=percentage,
        ))
    elif percentage >= BUDGET_WARNING_PERCENT:
        alerts.append(BudgetAlert(
            kind=BUDGET_WARNING,
            message=f'You are close to the limit of "{budget.name}" ({percentage:.1f}% used)',
            budget_id=budget.id,
            percentage=percentage,
        ))

    for category in budget.categories:
        if category.limit <= 0:
            continue
        used = _percent(category.spent, category.limit)
        if used >= CATEGORY_EXCEEDED_PERCENT:
            alerts.append(BudgetAlert(
                kind=CATEGORY_EXCEEDED,
                message=f'Limit exceeded in "{category.name}": {category.spent}/{category.limit}',
                budget_id=budget.id,
                percentage=used,
                category=category.name,
            ))

    return alerts
