# splitgroups/services/group_service.py
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, or_, select

from splitgroups.errors import AlreadyMember, Forbidden, InvalidInvite, NotFound
from splitgroups.models.group import GroupMember, MemberStatus, SplitGroup
from splitgroups.models.user import User
from splitgroups.services import notification_service

logger = logging.getLogger(__name__)


def load_group(session: Session, group_id: int, for_update: bool = False) -> SplitGroup:
    """Fetch a group or raise NotFound.

    Mutations pass ``for_update=True`` to take the group row lock where the
    backend has one. SQLite ignores it, so writes that must not be applied twice
    are also made conditional (see ``settlement_service.claim_splits``).
    """
    stmt = select(SplitGroup).where(SplitGroup.id == group_id)
    if for_update:
        stmt = stmt.with_for_update()
    group = session.exec(stmt).first()
    if not group:
        raise NotFound("Group not found")
    return group


def find_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email.strip().lower())).first()


def create_group(session: Session, creator: User, name: str, description: Optional[str] = None,
                 auto_settle_transaction: bool = True) -> SplitGroup:
    group = SplitGroup(name=name.strip(), description=description, created_by=creator.id,
                       auto_settle_transaction=auto_settle_transaction)
    session.add(group); session.commit(); session.refresh(group)
    logger.info("User %s created group %s", creator.id, group.id)
    return group


def update_group(session: Session, group_id: int, requester: User, name: Optional[str] = None,
                 description: Optional[str] = None, auto_settle_transaction: Optional[bool] = None) -> SplitGroup:
    group = load_group(session, group_id, for_update=True)
    if group.created_by != requester.id:
        raise Forbidden("Only creator can update group")
    if name:
        group.name = name.strip()
    if description is not None:
        group.description = description
    if auto_settle_transaction is not None:
        group.auto_settle_transaction = auto_settle_transaction
    session.add(group); session.commit(); session.refresh(group)
    return group


def delete_group(session: Session, group_id: int, requester: User) -> None:
    group = load_group(session, group_id, for_update=True)
    if group.created_by != requester.id:
        raise Forbidden("Only creator can delete group")

    group_name = group.name
    for member_id in group.accepted_member_ids():
        notification_service.create_notification(
            session,
            member_id,
            "group_deleted",
            "Group Deleted",
            f'The group "{group_name}" has been deleted by the creator.',
            {"groupId": group_id},
        )

    group = load_group(session, group_id, for_update=True)
    session.delete(group)
    session.commit()
    logger.info("User %s deleted group %s", requester.id, group_id)


def invite_member(session: Session, group_id: int, inviter: User, email: str) -> GroupMember:
    group = load_group(session, group_id, for_update=True)
    if not group.is_participant(inviter.id):
        raise Forbidden("Only group members can invite others")

    invitee = find_user_by_email(session, email)
    if not invitee:
        raise NotFound("User with this email not found")
    if invitee.id == group.created_by:
        raise InvalidInvite("Cannot invite the group creator")

    member = group.find_member(invitee.id)
    if member is not None and member.status == MemberStatus.accepted:
        raise AlreadyMember("User is already a member")
    if member is not None and member.status == MemberStatus.pending:
        raise AlreadyMember("User already has a pending invite")

    if member is not None:
        logger.info("Re-inviting user %s to group %s after decline", invitee.id, group_id)
        member.status = MemberStatus.pending
        member.invited_by = inviter.id
        member.invited_at = datetime.utcnow()
        member.joined_at = None
    else:
        member = GroupMember(user_id=invitee.id, status=MemberStatus.pending, invited_by=inviter.id)
        group.members.append(member)
    session.add(group)
    group_name = group.name
    try:
        session.commit()
    except IntegrityError:
        # another invite for the same user committed first
        session.rollback()
        raise AlreadyMember("User already has a pending invite")
    session.refresh(member)
    logger.info("User %s invited user %s to group %s", inviter.id, invitee.id, group_id)

    notification_service.create_notification(
        session,
        invitee.id,
        "group_invite",
        "Group Invite",
        f'{inviter.name} invited you to join "{group_name}"',
        {"groupId": group_id, "inviterId": inviter.id},
    )
    return member


def respond_to_invite(session: Session, group_id: int, user: User, accept: bool) -> GroupMember:
    group = load_group(session, group_id, for_update=True)
    member = group.find_member(user.id)
    if member is None or member.status != MemberStatus.pending:
        raise NotFound("No pending invite found")

    if accept:
        member.status = MemberStatus.accepted
        member.joined_at = datetime.utcnow()
    else:
        member.status = MemberStatus.declined
    inviter_id = member.invited_by
    group_name = group.name
    session.add(member); session.commit(); session.refresh(member)
    logger.info("User %s %s invite to group %s", user.id, "accepted" if accept else "declined", group_id)

    if inviter_id is not None:
        if accept:
            notification_service.create_notification(
                session, inviter_id, "invite_accepted", "Invite Accepted",
                f'{user.name} accepted your invite to "{group_name}"',
                {"groupId": group_id, "userId": user.id},
            )
        else:
            notification_service.create_notification(
                session, inviter_id, "invite_declined", "Invite Declined",
                f'{user.name} declined your invite to "{group_name}"',
                {"groupId": group_id, "userId": user.id},
            )
    return member


def leave_group(session: Session, group_id: int, user: User) -> None:
    group = load_group(session, group_id, for_update=True)
    if group.created_by == user.id:
        raise Forbidden("Creator cannot leave. Delete the group instead.")
    member = group.find_member(user.id)
    if member is None:
        raise NotFound("You are not a member of this group")

    group.members.remove(member)
    creator_id = group.created_by
    group_name = group.name
    session.add(group); session.commit()
    logger.info("User %s left group %s", user.id, group_id)

    notification_service.create_notification(
        session, creator_id, "member_left", "Member Left",
        f'{user.name} left the group "{group_name}"',
        {"groupId": group_id, "userId": user.id},
    )


def list_groups_for_user(session: Session, user_id: int) -> List[SplitGroup]:
    accepted_in = select(GroupMember.group_id).where(
        GroupMember.user_id == user_id, GroupMember.status == MemberStatus.accepted
    )
    stmt = (
        select(SplitGroup)
        .where(or_(SplitGroup.created_by == user_id, col(SplitGroup.id).in_(accepted_in)))
        .order_by(col(SplitGroup.created_at).desc(), col(SplitGroup.id).desc())
    )
    return session.exec(stmt).all()


def list_pending_invites(session: Session, user_id: int) -> List[SplitGroup]:
    stmt = (
        select(SplitGroup)
        .join(GroupMember, GroupMember.group_id == SplitGroup.id)
        .where(GroupMember.user_id == user_id, GroupMember.status == MemberStatus.pending)
        .order_by(col(GroupMember.invited_at).desc())
    )
    return session.exec(stmt).all()


def search_users(session: Session, requester: User, email_fragment: str, limit: int = 10) -> List[User]:
    stmt = (
        select(User)
        .where(col(User.email).ilike(f"%{email_fragment.strip()}%"), User.id != requester.id)
        .limit(limit)
    )
    return session.exec(stmt).all()
