from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from splitgroups.models.expense import SplitType


class GroupCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    auto_settle_transaction: bool = True


class GroupUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    auto_settle_transaction: Optional[bool] = None


class InviteIn(BaseModel):
    email: str


class InviteResponse(BaseModel):
    accept: bool


class SplitIn(BaseModel):
    user_id: int
    amount: Optional[float] = None
    percentage: Optional[float] = None


class ExpenseCreate(BaseModel):
    description: str = Field(min_length=1)
    amount: float
    split_type: SplitType = SplitType.equal
    custom_splits: Optional[List[SplitIn]] = None
    paid_by: Optional[int] = None
    date: Optional[datetime] = None


class SettleIn(BaseModel):
    member_id: int
    amount: float
