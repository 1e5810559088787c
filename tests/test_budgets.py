from decimal import Decimal

import pytest

from planify.budgets import (
    BUDGET_EXCEEDED,
    BUDGET_WARNING,
    CATEGORY_EXCEEDED,
    evaluate_alerts,
)
from planify.domain import Budget, BudgetCategory
from planify.errors import BackendUnavailable, ValidationError

OWNER = "a@x.com"


def make_budget(spent, total=1000, categories=()):
    return Budget(
        id="b1", name="May", month="2024-05", total_amount=Decimal(total),
        created_by=OWNER, current_spent=Decimal(spent), categories=tuple(categories),
    )


async def add_budget(registry, owner=OWNER, month="2024-05", categories=(("Comida", 200),), name="May"):
    return await registry.budgets.create({
        "name": name,
        "month": month,
        "total_amount": Decimal("1000"),
        "created_by": owner,
        "categories": tuple(BudgetCategory(name=n, limit=Decimal(l)) for n, l in categories),
    })


async def add_expense(registry, amount, category="Comida", date="2024-05-10", owner=OWNER):
    return await registry.expenses.create({
        "title": f"{category} {amount}",
        "amount": Decimal(str(amount)),
        "category": category,
        "date": date,
        "created_by": owner,
    })


@pytest.mark.asyncio
async def test_example_scenario(registry, recalculator):
    await add_budget(registry)
    await add_expense(registry, 150, "Comida")
    await add_expense(registry, 900, "Transporte")

    [budget] = await recalculator.recompute(OWNER, "2024-05")

    assert budget.current_spent == Decimal("1050")
    assert budget.categories[0].spent == Decimal("150")
    assert [a.kind for a in evaluate_alerts(budget)] == [BUDGET_EXCEEDED]


@pytest.mark.asyncio
async def test_recompute_persists(registry, recalculator):
    budget = await add_budget(registry)
    await add_expense(registry, "12.30")
    await recalculator.recompute(OWNER, "2024-05")

    stored = await registry.budgets.get(budget.id)
    assert stored.current_spent == Decimal("12.30")
    assert stored.categories[0].spent == Decimal("12.30")


@pytest.mark.asyncio
async def test_recompute_is_idempotent(registry, recalculator):
    await add_budget(registry)
    await add_expense(registry, 40)
    await add_expense(registry, "10.25", "Ocio")

    first = await recalculator.recompute(OWNER, "2024-05")
    second = await recalculator.recompute(OWNER, "2024-05")

    assert first == second
    assert second[0].current_spent == Decimal("50.25")


@pytest.mark.asyncio
async def test_no_expenses_resets_to_zero(registry, recalculator):
    budget = await add_budget(registry)
    await registry.budgets.update(budget.id, {"current_spent": Decimal("999")})

    [updated] = await recalculator.recompute(OWNER, "2024-05")

    assert updated.current_spent == Decimal("0")
    assert updated.categories[0].spent == Decimal("0")


@pytest.mark.asyncio
async def test_only_owner_and_month_count(registry, recalculator):
    await add_budget(registry)
    await add_expense(registry, 10, date="2024-05-01")
    await add_expense(registry, 20, date="2024-05-31")
    await add_expense(registry, 400, date="2024-04-30")
    await add_expense(registry, 500, date="2024-06-01")
    await add_expense(registry, 600, owner="someone@else.com")

    [budget] = await recalculator.recompute(OWNER, "2024-05")

    assert budget.current_spent == Decimal("30")


@pytest.mark.asyncio
async def test_unmatched_category_counts_in_total_only(registry, recalculator):
    await add_budget(registry, categories=(("Comida", 200), ("Ocio", 50)))
    await add_expense(registry, 30, "Comida")
    await add_expense(registry, 70, "Salud")

    [budget] = await recalculator.recompute(OWNER, "2024-05")

    assert budget.current_spent == Decimal("100")
    assert [(c.name, c.spent) for c in budget.categories] == [
        ("Comida", Decimal("30")),
        ("Ocio", Decimal("0")),
    ]


@pytest.mark.asyncio
async def test_every_budget_of_the_month_is_updated(registry, recalculator):
    await add_budget(registry, name="One")
    await add_budget(registry, name="Two", categories=())
    await add_budget(registry, name="June", month="2024-06")
    await add_expense(registry, 75)

    updated = await recalculator.recompute(OWNER, "2024-05")

    assert [b.name for b in updated] == ["One", "Two"]
    assert all(b.current_spent == Decimal("75") for b in updated)
    june = (await registry.budgets.filter({"month": "2024-06"}))[0]
    assert june.current_spent == Decimal("0")


@pytest.mark.asyncio
async def test_no_budgets_means_nothing_to_do(registry, recalculator):
    await add_expense(registry, 75)
    assert await recalculator.recompute(OWNER, "2024-05") == []


@pytest.mark.asyncio
async def test_recompute_for_expense_uses_its_month(registry, recalculator):
    await add_budget(registry, month="2024-07")
    expense = await add_expense(registry, 5, date="2024-07-04")

    [budget] = await recalculator.recompute_for_expense(expense)
    assert budget.current_spent == Decimal("5")


@pytest.mark.asyncio
async def test_first_failed_write_stops_recompute(registry, recalculator, monkeypatch):
    first = await add_budget(registry, name="One")
    second = await add_budget(registry, name="Two")
    await add_expense(registry, 60)
    real_update = registry.budgets.update

    async def failing_update(entity_id, fields):
        if entity_id == second.id:
            raise BackendUnavailable("write rejected")
        return await real_update(entity_id, fields)

    monkeypatch.setattr(registry.budgets, "update", failing_update)

    with pytest.raises(BackendUnavailable):
        await recalculator.recompute(OWNER, "2024-05")

    assert (await registry.budgets.get(first.id)).current_spent == Decimal("60")
    assert (await registry.budgets.get(second.id)).current_spent == Decimal("0")


def test_no_alert_at_half():
    assert evaluate_alerts(make_budget(500)) == []


def test_warning_at_85_percent():
    alerts = evaluate_alerts(make_budget(850))
    assert [a.kind for a in alerts] == [BUDGET_WARNING]
    assert alerts[0].percentage == Decimal("85")


def test_exceeded_at_95_percent_only():
    assert [a.kind for a in evaluate_alerts(make_budget(950))] == [BUDGET_EXCEEDED]


def test_thresholds_are_inclusive():
    assert [a.kind for a in evaluate_alerts(make_budget(800))] == [BUDGET_WARNING]
    assert [a.kind for a in evaluate_alerts(make_budget(900))] == [BUDGET_EXCEEDED]
    assert evaluate_alerts(make_budget("799.99")) == []


def test_zero_total_means_zero_percent():
    assert evaluate_alerts(make_budget(100, total=0)) == []


def test_category_alerts_follow_budget_alert():
    categories = [
        BudgetCategory("Comida", Decimal("100"), Decimal("95")),
        BudgetCategory("Ocio", Decimal("100"), Decimal("50")),
        BudgetCategory("Regalos", Decimal("0"), Decimal("500")),
        BudgetCategory("Salud", Decimal("10"), Decimal("9")),
    ]
    alerts = evaluate_alerts(make_budget(850, categories=categories))

    assert [(a.kind, a.category) for a in alerts] == [
        (BUDGET_WARNING, None),
        (CATEGORY_EXCEEDED, "Comida"),
        (CATEGORY_EXCEEDED, "Salud"),
    ]


@pytest.mark.asyncio
async def test_recompute_rejects_malformed_month(recalculator):
    with pytest.raises(ValidationError):
        await recalculator.recompute(OWNER, "May")
