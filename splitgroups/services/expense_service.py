# splitgroups/services/expense_service.py
import logging
import math
from datetime import datetime
from typing import List, Optional, Sequence
from sqlmodel import Session

from splitgroups.errors import Forbidden, InvalidAmount, InvalidSplit, NotFound
from splitgroups.models.expense import ExpenseSplit, GroupExpense, SplitType
from splitgroups.models.user import User
from splitgroups.services import notification_service
from splitgroups.services.group_service import load_group

logger = logging.getLogger(__name__)

TOLERANCE = 0.01


def _checked_entries(custom_splits: Optional[Sequence[dict]], participants: Sequence[int], key: str) -> List[dict]:
    if not custom_splits:
        raise InvalidSplit(f"{key.capitalize()} splits are required for this split type")
    seen = set()
    for s in custom_splits:
        uid = s.get("user_id")
        value = s.get(key)
        if uid not in participants:
            raise InvalidSplit(f"User {uid} is not a member of this group")
        if uid in seen:
            raise InvalidSplit(f"User {uid} appears more than once in the split")
        if value is None or not math.isfinite(value) or value < 0:
            raise InvalidSplit(f"Split {key} must be zero or more")
        seen.add(uid)
    return list(custom_splits)


def build_splits(amount: float, split_type: SplitType, participants: Sequence[int],
                 custom_splits: Optional[Sequence[dict]] = None) -> List[ExpenseSplit]:
    """Turn an expense total into per-user splits.

    ``equal`` rounds each share to cents and does not hand the leftover cent to
    anyone, so 100 between three people is recorded as 3 x 33.33.
    """
    if split_type == SplitType.equal:
        n = len(participants)
        share = round(amount / n, 2)
        return [ExpenseSplit(user_id=uid, amount=share, percentage=100 / n) for uid in participants]

    if split_type == SplitType.percentage:
        entries = _checked_entries(custom_splits, participants, "percentage")
        total_pct = sum(s["percentage"] for s in entries)
        if abs(total_pct - 100) > TOLERANCE:
            raise InvalidSplit("Percentages must add up to 100")
        return [
            ExpenseSplit(user_id=s["user_id"], amount=round(amount * s["percentage"] / 100, 2), percentage=s["percentage"])
            for s in entries
        ]

    if split_type == SplitType.custom:
        entries = _checked_entries(custom_splits, participants, "amount")
        total = sum(s["amount"] for s in entries)
        if abs(total - amount) > TOLERANCE:
            raise InvalidSplit("Custom amounts must add up to total expense")
        return [ExpenseSplit(user_id=s["user_id"], amount=round(s["amount"], 2)) for s in entries]

    raise InvalidSplit(f"Unknown split type: {split_type}")


def add_expense(
    session: Session,
    group_id: int,
    requester: User,
    description: str,
    amount: float,
    split_type: SplitType = SplitType.equal,
    custom_splits: Optional[Sequence[dict]] = None,
    paid_by: Optional[int] = None,
    date: Optional[datetime] = None,
) -> GroupExpense:
    if amount is None or not math.isfinite(amount) or round(amount, 2) <= 0:
        raise InvalidAmount("Expense amount must be positive")
    amount = round(amount, 2)

    group = load_group(session, group_id, for_update=True)
    if not group.is_participant(requester.id):
        raise Forbidden("Only group members can add expenses")
    payer_id = paid_by if paid_by is not None else requester.id
    if not group.is_participant(payer_id):
        raise Forbidden("Payer must be a member of this group")

    participants = group.participant_ids()
    splits = build_splits(amount, SplitType(split_type), participants, custom_splits)

    expense = GroupExpense(
        description=description,
        amount=amount,
        paid_by=payer_id,
        split_type=SplitType(split_type),
        date=date or datetime.utcnow(),
        created_by=requester.id,
    )
    expense.splits = splits
    group.expenses.append(expense)
    group_name = group.name
    session.add(group); session.commit(); session.refresh(expense)
    logger.info("User %s added expense %s (%.2f, %s) to group %s",
                requester.id, expense.id, amount, expense.split_type.value, group_id)

    for uid in participants:
        if uid == payer_id:
            continue
        notification_service.create_notification(
            session,
            uid,
            "expense_added",
            "New Expense",
            f'{requester.name} added {amount:.2f} expense "{description}" in "{group_name}"',
            {"groupId": group_id, "expenseId": expense.id},
        )
    return expense


def delete_expense(session: Session, group_id: int, requester: User, expense_id: int) -> None:
    group = load_group(session, group_id, for_update=True)
    expense = next((e for e in group.expenses if e.id == expense_id), None)
    if expense is None:
        raise NotFound("Expense not found")
    if expense.created_by != requester.id and group.created_by != requester.id:
        raise Forbidden("Not authorized to delete this expense")

    group.expenses.remove(expense)
    session.add(group); session.commit()
    logger.info("User %s deleted expense %s from group %s", requester.id, expense_id, group_id)
