# splitgroups/services/group_view.py
"""Read-side assembly of groups for the API.

The ledger works on bare user ids; this module is the only place that
resolves them to names and emails, after balances and debts are computed.
"""
from typing import Dict, Iterable, List, Optional
from sqlmodel import Session, col, select

from splitgroups.errors import Forbidden
from splitgroups.models.expense import GroupExpense
from splitgroups.models.group import MemberStatus, SplitGroup
from splitgroups.models.user import User
from splitgroups.services.balance_service import compute_group_balances
from splitgroups.services.group_service import load_group
from splitgroups.services.settlement_service import suggest_settlements


def user_directory(session: Session, user_ids: Iterable[Optional[int]]) -> Dict[int, dict]:
    ids = {uid for uid in user_ids if uid is not None}
    if not ids:
        return {}
    users = session.exec(select(User).where(col(User.id).in_(ids))).all()
    return {u.id: {"id": u.id, "name": u.name, "email": u.email} for u in users}


def _referenced_ids(group: SplitGroup) -> List[int]:
    ids = [group.created_by]
    for m in group.members:
        ids += [m.user_id, m.invited_by]
    for e in group.expenses:
        ids += [e.paid_by, e.created_by] + [s.user_id for s in e.splits]
    return ids


def serialize_expense(expense: GroupExpense, users: Dict[int, dict]) -> dict:
    return {
        "id": expense.id,
        "description": expense.description,
        "amount": expense.amount,
        "paid_by": expense.paid_by,
        "paid_by_user": users.get(expense.paid_by),
        "split_type": expense.split_type.value,
        "date": expense.date,
        "created_by": expense.created_by,
        "created_at": expense.created_at,
        "splits": [
            {
                "user_id": s.user_id,
                "user": users.get(s.user_id),
                "amount": s.amount,
                "percentage": s.percentage,
                "settled": s.settled,
                "settled_at": s.settled_at,
            }
            for s in expense.splits
        ],
    }


def serialize_group(group: SplitGroup, users: Dict[int, dict]) -> dict:
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "created_by": group.created_by,
        "creator": users.get(group.created_by),
        "auto_settle_transaction": group.auto_settle_transaction,
        "created_at": group.created_at,
        "members": [
            {
                "user_id": m.user_id,
                "user": users.get(m.user_id),
                "status": m.status.value,
                "invited_by": m.invited_by,
                "invited_at": m.invited_at,
                "joined_at": m.joined_at,
            }
            for m in group.members
        ],
    }


def get_group_view(session: Session, group_id: int, requester: User) -> dict:
    group = load_group(session, group_id)
    if not group.is_participant(requester.id):
        raise Forbidden("Not authorized to view this group")

    balances = compute_group_balances(group)
    debts = suggest_settlements(balances)

    users = user_directory(session, _referenced_ids(group))
    view = serialize_group(group, users)
    view["expenses"] = [serialize_expense(e, users) for e in group.expenses]
    view["balances"] = balances
    view["debts"] = [
        dict(d, from_user=users.get(d["from"]), to_user=users.get(d["to"])) for d in debts
    ]
    return view


def group_summaries(session: Session, groups: List[SplitGroup], user_id: int) -> List[dict]:
    users = user_directory(session, [uid for g in groups for uid in [g.created_by] + [m.user_id for m in g.members]])
    out = []
    for g in groups:
        row = serialize_group(g, users)
        row["user_balance"] = compute_group_balances(g).get(user_id, 0.0)
        row["total_expenses"] = round(sum(e.amount for e in g.expenses), 2)
        row["member_count"] = len(g.accepted_member_ids()) + 1
        out.append(row)
    return out


def pending_invite_views(session: Session, groups: List[SplitGroup], user_id: int) -> List[dict]:
    rows = []
    inviter_ids = []
    for g in groups:
        m = g.find_member(user_id)
        if m is not None and m.status == MemberStatus.pending:
            rows.append((g, m))
            inviter_ids += [g.created_by, m.invited_by]
    users = user_directory(session, inviter_ids)
    return [
        {
            "group_id": g.id,
            "name": g.name,
            "description": g.description,
            "creator": users.get(g.created_by),
            "invited_by": users.get(m.invited_by),
            "invited_at": m.invited_at,
        }
        for g, m in rows
    ]
