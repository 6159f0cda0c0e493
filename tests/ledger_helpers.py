from splitgroups.models.expense import ExpenseSplit, GroupExpense, SplitType
from splitgroups.models.group import GroupMember, MemberStatus, SplitGroup


def make_group(creator=1, members=None):
    """In-memory group; ``members`` maps user id -> status."""
    g = SplitGroup(id=1, name="Flat", created_by=creator)
    for uid, status in (members or {}).items():
        g.members.append(GroupMember(user_id=uid, status=MemberStatus(status), invited_by=creator))
    return g


def add_expense(group, paid_by, shares, settled=()):
    """Attach an expense paid by ``paid_by`` with ``shares`` {user_id: amount}."""
    e = GroupExpense(id=len(group.expenses) + 1, description="x", amount=round(sum(shares.values()), 2),
                     paid_by=paid_by, split_type=SplitType.custom, created_by=paid_by)
    for uid, amount in shares.items():
        e.splits.append(ExpenseSplit(user_id=uid, amount=amount, settled=uid in settled))
    group.expenses.append(e)
    return e
