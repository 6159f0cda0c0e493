from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel

class Transaction(SQLModel, table=True):
    """Entry in a user's personal ledger, written when a split settlement is recorded."""
    __tablename__ = "transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    type: str = "expense"
    amount: float
    description: str
    category: str
    date: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)
