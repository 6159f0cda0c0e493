from splitgroups.models.user import User
from splitgroups.models.group import SplitGroup, GroupMember, MemberStatus
from splitgroups.models.expense import GroupExpense, ExpenseSplit, SplitType
from splitgroups.models.notification import Notification
from splitgroups.models.transaction import Transaction

__all__ = [
    "User",
    "SplitGroup", "GroupMember", "MemberStatus",
    "GroupExpense", "ExpenseSplit", "SplitType",
    "Notification", "Transaction",
]
