from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from splitgroups.models.expense import GroupExpense


class MemberStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"


class SplitGroup(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    description: Optional[str] = None
    # the creator is an implicit accepted member and never has a GroupMember row
    created_by: int = Field(foreign_key="user.id", index=True)
    auto_settle_transaction: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

    members: List["GroupMember"] = Relationship(
        back_populates="group",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "GroupMember.id"},
    )
    expenses: List["GroupExpense"] = Relationship(
        back_populates="group",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "GroupExpense.id"},
    )

    def find_member(self, user_id: int) -> Optional["GroupMember"]:
        for m in self.members:
            if m.user_id == user_id:
                return m
        return None

    def accepted_member_ids(self) -> List[int]:
        return [m.user_id for m in self.members if m.status == MemberStatus.accepted]

    def participant_ids(self) -> List[int]:
        return [self.created_by] + self.accepted_member_ids()

    def is_participant(self, user_id: int) -> bool:
        return user_id in self.participant_ids()


class GroupMember(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("group_id", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: Optional[int] = Field(default=None, foreign_key="splitgroup.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    status: MemberStatus = Field(default=MemberStatus.pending)
    invited_by: Optional[int] = Field(default=None, foreign_key="user.id")
    invited_at: datetime = Field(default_factory=datetime.utcnow)
    joined_at: Optional[datetime] = None

    group: Optional[SplitGroup] = Relationship(back_populates="members")
