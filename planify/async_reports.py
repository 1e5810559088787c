import asyncio
from decimal import Decimal
from typing import Any, Dict, List

from planify.access import AccessControl
from planify.budgets import evaluate_alerts
from planify.stats import balance_stats, dashboard_totals, expense_stats
from planify.store import EntityStore
from planify.transforms import expenses_in_month, sum_amounts


async def expenses_by_month(expenses: EntityStore, owner_email: str, months: List[str]) -> Dict[str, Decimal]:
    """Total spent by ``owner_email`` in each month, months computed in parallel.

    months: list of YYYY-MM strings. Months without expenses map to 0.
    """
    history = await expenses.filter({"created_by": owner_email})

    async def month_total(month: str) -> tuple[str, Decimal]:
        total = sum_amounts(expenses_in_month(history, month))
        await asyncio.sleep(0)  # cooperate
        return month, total

    results = await asyncio.gather(*(month_total(m) for m in months))
    return {k: v for k, v in results}


async def dashboard_summary(access: AccessControl, actor_email: str, month: str) -> Dict[str, Any]:
    """Everything the dashboard shows for one user: owned and shared entities,
    totals, budget alerts and the month's expense statistics.
    """
    budgets, goals, expenses = await asyncio.gather(
        access.list_user_entities(actor_email, "budget"),
        access.list_user_entities(actor_email, "goal"),
        access.list_user_entities(actor_email, "expense"),
    )
    alerts = [alert for row in budgets for alert in evaluate_alerts(row.entity)]
    return {
        "budgets": budgets,
        "goals": goals,
        "expenses": expenses,
        "alerts": alerts,
        "totals": dashboard_totals(budgets, goals),
        "expense_stats": expense_stats(expenses, month),
    }


async def balance_overview(access: AccessControl, actor_email: str, month: str) -> Dict[str, Any]:
    incomes, expenses = await asyncio.gather(
        access.list_user_entities(actor_email, "income"),
        access.list_user_entities(actor_email, "expense"),
    )
    return balance_stats(incomes, expenses, month)

