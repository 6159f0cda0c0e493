from fastapi import APIRouter, Depends
from sqlmodel import Session
from splitgroups.auth import get_current_user
from splitgroups.db import get_session
from splitgroups.models.user import User
from splitgroups.schemas import ExpenseCreate, SettleIn
from splitgroups.services import expense_service, settlement_service
from splitgroups.services.group_view import serialize_expense, user_directory

router = APIRouter(prefix="/api/split-groups", tags=["expenses"])


@router.post("/{group_id}/expense", status_code=201)
def add_expense(group_id: int, payload: ExpenseCreate, current_user: User = Depends(get_current_user),
                s: Session = Depends(get_session)):
    custom = [sp.model_dump() for sp in payload.custom_splits] if payload.custom_splits else None
    e = expense_service.add_expense(
        s, group_id, current_user,
        description=payload.description,
        amount=payload.amount,
        split_type=payload.split_type,
        custom_splits=custom,
        paid_by=payload.paid_by,
        date=payload.date,
    )
    users = user_directory(s, [e.paid_by] + [sp.user_id for sp in e.splits])
    return serialize_expense(e, users)


@router.delete("/{group_id}/expense/{expense_id}")
def delete_expense(group_id: int, expense_id: int, current_user: User = Depends(get_current_user),
                   s: Session = Depends(get_session)):
    expense_service.delete_expense(s, group_id, current_user, expense_id)
    return {"ok": True, "message": "Expense deleted"}


@router.post("/{group_id}/settle")
def settle(group_id: int, payload: SettleIn, current_user: User = Depends(get_current_user),
           s: Session = Depends(get_session)):
    settled = settlement_service.settle_with_member(s, group_id, current_user, payload.member_id, payload.amount)
    return {"ok": True, "message": f"Settled {settled:.2f}", "settled_amount": settled}
