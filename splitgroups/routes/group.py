from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
from splitgroups.auth import get_current_user
from splitgroups.db import get_session
from splitgroups.models.user import User
from splitgroups.schemas import GroupCreate, GroupUpdate, InviteIn, InviteResponse
from splitgroups.services import group_service
from splitgroups.services.group_view import get_group_view, group_summaries, pending_invite_views, serialize_group, user_directory

router = APIRouter(prefix="/api/split-groups", tags=["split-groups"])


@router.get("/search-users")
def search_users(email: str = Query(..., min_length=3), current_user: User = Depends(get_current_user),
                 s: Session = Depends(get_session)):
    users = group_service.search_users(s, current_user, email)
    return [{"id": u.id, "name": u.name, "email": u.email} for u in users]


@router.get("/invites")
def pending_invites(current_user: User = Depends(get_current_user), s: Session = Depends(get_session)):
    groups = group_service.list_pending_invites(s, current_user.id)
    return pending_invite_views(s, groups, current_user.id)


@router.get("")
def list_groups(current_user: User = Depends(get_current_user), s: Session = Depends(get_session)):
    groups = group_service.list_groups_for_user(s, current_user.id)
    return group_summaries(s, groups, current_user.id)


@router.post("", status_code=201)
def create_group(payload: GroupCreate, current_user: User = Depends(get_current_user), s: Session = Depends(get_session)):
    g = group_service.create_group(s, current_user, payload.name, payload.description, payload.auto_settle_transaction)
    return serialize_group(g, user_directory(s, [g.created_by]))


@router.get("/{group_id}")
def view_group(group_id: int, current_user: User = Depends(get_current_user), s: Session = Depends(get_session)):
    return get_group_view(s, group_id, current_user)


@router.put("/{group_id}")
def update_group(group_id: int, payload: GroupUpdate, current_user: User = Depends(get_current_user),
                 s: Session = Depends(get_session)):
    g = group_service.update_group(s, group_id, current_user, payload.name, payload.description,
                                   payload.auto_settle_transaction)
    return serialize_group(g, user_directory(s, [g.created_by] + [m.user_id for m in g.members]))


@router.delete("/{group_id}")
def delete_group(group_id: int, current_user: User = Depends(get_current_user), s: Session = Depends(get_session)):
    group_service.delete_group(s, group_id, current_user)
    return {"ok": True, "message": "Group deleted"}


@router.post("/{group_id}/invite")
def invite_member(group_id: int, payload: InviteIn, current_user: User = Depends(get_current_user),
                  s: Session = Depends(get_session)):
    group_service.invite_member(s, group_id, current_user, payload.email)
    return {"ok": True, "message": "Invite sent successfully"}


@router.put("/{group_id}/respond")
def respond_to_invite(group_id: int, payload: InviteResponse, current_user: User = Depends(get_current_user),
                      s: Session = Depends(get_session)):
    group_service.respond_to_invite(s, group_id, current_user, payload.accept)
    return {"ok": True, "message": "Invite accepted" if payload.accept else "Invite declined"}


@router.delete("/{group_id}/leave")
def leave_group(group_id: int, current_user: User = Depends(get_current_user), s: Session = Depends(get_session)):
    group_service.leave_group(s, group_id, current_user)
    return {"ok": True, "message": "Left group successfully"}
