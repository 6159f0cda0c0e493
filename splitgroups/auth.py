import logging
from fastapi import APIRouter, Depends, Request, HTTPException
from fastapi.responses import RedirectResponse
from authlib.integrations.starlette_client import OAuth
from sqlmodel import Session, select
from splitgroups.config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET
from splitgroups.db import get_session
from splitgroups.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()
oauth = OAuth()
oauth.register(
    name='google',
    client_id=GOOGLE_CLIENT_ID,
    client_secret=GOOGLE_CLIENT_SECRET,
    server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
    client_kwargs={'scope': 'openid email profile'},
)


def require_user(request: Request):
    user = request.session.get("user")
    if not user:
        raise HTTPException(status_code=401, detail="Login required")
    return user


def get_current_user(session_user: dict = Depends(require_user), session: Session = Depends(get_session)) -> User:
    user = session.get(User, session_user["id"])
    if not user:
        raise HTTPException(status_code=401, detail="Login required")
    return user


def upsert_user(s: Session, google_id, email, name) -> User:
    email = email.strip().lower() if email else None
    user = None
    if google_id:
        user = s.exec(select(User).where(User.google_id == google_id)).first()
    if not user and email:
        user = s.exec(select(User).where(User.email == email)).first()
    if not user:
        user = User(name=name, email=email, google_id=google_id)
        s.add(user); s.commit(); s.refresh(user)
        logger.info("Registered user %s", user.id)
        return user
    changed = False
    if google_id and user.google_id != google_id:
        user.google_id = google_id; changed = True
    if email and user.email != email:
        user.email = email; changed = True
    if user.name != name:
        user.name = name; changed = True
    if changed:
        s.add(user); s.commit(); s.refresh(user)
    return user


@router.get("/login")
async def login(request: Request):
    redirect_uri = request.url_for('auth_callback')
    return await oauth.google.authorize_redirect(request, str(redirect_uri))


@router.get("/auth", name="auth_callback")
async def auth(request: Request, s: Session = Depends(get_session)):
    logger.debug("Starting /auth callback")
    try:
        token = await oauth.google.authorize_access_token(request)
    except Exception as e:
        logger.exception("authorize_access_token() failed: %s", e)
        raise HTTPException(status_code=500, detail="OAuth token exchange failed; check server logs")

    userinfo = token.get("userinfo") if isinstance(token, dict) else None
    if not userinfo:
        try:
            resp = await oauth.google.get("userinfo", token=token)
            userinfo = resp.json()
        except Exception as e:
            logger.exception("userinfo lookup failed: %s", e)
            raise HTTPException(status_code=500, detail="Authentication failed; check server logs")

    if not userinfo or not isinstance(userinfo, dict):
        raise HTTPException(status_code=500, detail="Authentication failed: invalid userinfo")

    google_id = userinfo.get("sub") or userinfo.get("id")
    email = userinfo.get("email")
    name = userinfo.get("name") or email or "GoogleUser"

    user = upsert_user(s, google_id, email, name)
    request.session['user'] = {"id": user.id, "name": user.name, "email": user.email}
    return RedirectResponse(url="/")


@router.get("/logout")
def logout(request: Request):
    request.session.pop('user', None)
    return RedirectResponse(url="/")


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"id": current_user.id, "name": current_user.name, "email": current_user.email}
