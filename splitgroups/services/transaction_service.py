# splitgroups/services/transaction_service.py
from datetime import datetime
from typing import Optional
from sqlmodel import Session

from splitgroups.models.transaction import Transaction


def create_transaction(session: Session, user_id: int, type: str, amount: float, description: str,
                       category: str, date: Optional[datetime] = None) -> Transaction:
    # joins the caller's unit of work, the caller commits
    tx = Transaction(user_id=user_id, type=type, amount=round(amount, 2), description=description,
                     category=category, date=date or datetime.utcnow())
    session.add(tx)
    return tx
