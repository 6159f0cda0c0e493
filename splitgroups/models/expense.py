from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from splitgroups.models.group import SplitGroup


class SplitType(str, Enum):
    equal = "equal"
    percentage = "percentage"
    custom = "custom"


class GroupExpense(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: Optional[int] = Field(default=None, foreign_key="splitgroup.id", index=True)
    description: str
    amount: float
    paid_by: int = Field(foreign_key="user.id")
    split_type: SplitType = Field(default=SplitType.equal)
    date: datetime = Field(default_factory=datetime.utcnow)
    created_by: int = Field(foreign_key="user.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    group: Optional["SplitGroup"] = Relationship(back_populates="expenses")
    splits: List["ExpenseSplit"] = Relationship(
        back_populates="expense",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "ExpenseSplit.id"},
    )


class ExpenseSplit(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    expense_id: Optional[int] = Field(default=None, foreign_key="groupexpense.id", index=True)
    user_id: int = Field(foreign_key="user.id")
    amount: float
    percentage: Optional[float] = None
    settled: bool = False
    settled_at: Optional[datetime] = None

    expense: Optional[GroupExpense] = Relationship(back_populates="splits")
