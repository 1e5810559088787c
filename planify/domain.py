from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

ENTITY_TYPES = ("budget", "goal", "expense", "income")

# view < edit < admin
PERMISSION_LEVELS = {"view": 1, "edit": 2, "admin": 3}

COLLABORATION_STATUSES = ("pending", "accepted", "rejected")

ZERO = Decimal("0")


@dataclass(frozen=True)
class User:
    id: str
    email: str       # identity key
    full_name: str
    has_completed_onboarding: bool = False


@dataclass(frozen=True)
class BudgetCategory:
    name: str
    limit: Decimal
    spent: Decimal = ZERO  # derived


@dataclass(frozen=True)
class Budget:
    id: str
    name: str
    month: str              # YYYY-MM
    total_amount: Decimal
    created_by: str
    current_spent: Decimal = ZERO   # derived, rebuilt by recompute
    categories: tuple[BudgetCategory, ...] = ()


@dataclass(frozen=True)
class Goal:
    id: str
    title: str
    target_amount: Decimal
    current_amount: Decimal
    deadline: str            # YYYY-MM-DD
    category: str
    created_by: str

    @property
    def is_completed(self) -> bool:
        return self.current_amount >= self.target_amount

    @property
    def progress_percent(self) -> Decimal:
        if self.target_amount <= 0:
            return ZERO
        return self.current_amount / self.target_amount * 100


@dataclass(frozen=True)
class ExpenseShare:
    email: str
    amount: Decimal


@dataclass(frozen=True)
class Expense:
    id: str
    title: str
    amount: Decimal
    category: str
    date: str                # YYYY-MM-DD
    created_by: str
    paid_by: str = ""
    budget_id: Optional[str] = None
    goal_id: Optional[str] = None
    shared_with: tuple[ExpenseShare, ...] = ()

    @property
    def is_shared(self) -> bool:
        return len(self.shared_with) > 0


@dataclass(frozen=True)
class Income:
    id: str
    title: str
    amount: Decimal
    category: str
    date: str
    created_by: str
    is_recurring: bool = False
    frequency: Optional[str] = None


@dataclass(frozen=True)
class Collaboration:
    id: str
    entity_type: str
    entity_id: str
    owner_email: str
    collaborator_email: str
    permission_level: str = "view"
    status: str = "pending"
    invited_date: str = ""


@dataclass(frozen=True)
class Notification:
    id: str
    user_email: str          # recipient
    title: str
    message: str
    type: str = "alert"
    link: Optional[str] = None
    is_read: bool = False
    created_date: str = ""


@dataclass(frozen=True)
class EntityAccess:
    """One row of a user's entity listing: owned, or shared through a collaboration."""
    entity: Any
    is_shared: bool = False
    permission: Optional[str] = None


def display_name(entity: Any) -> str:
    """Human label of an entity: budgets carry a name, the rest a title."""
    return getattr(entity, "name", None) or getattr(entity, "title", "") or ""
