from fastapi import APIRouter, HTTPException, Header, Request, status, Depends
from sqlmodel import Session, select
from typing import Optional
from app.models.user import User
from app.schemas.user import UserCreate, UserRead, Token, UserUpdate, MembershipRead
from app.core.security import verify_password, get_password_hash, create_access_token, decode_access_token
from app.core.tenancy import OrgContext
from app.database import get_session
from app.core.config import Settings
from app.services.membership_cache import MembershipCache
from app.services.organization_service import load_memberships
from app.workflow.errors import MissingOrgContextError, PermissionDeniedError
from app.workflow.states import Role
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError
from datetime import datetime

router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
settings = Settings()


def get_membership_cache(request: Request) -> MembershipCache:
    return request.app.state.membership_cache


def memberships_for(user: User, session: Session, cache: MembershipCache):
    memberships = cache.get(user.id)
    if memberships is None:
        memberships = load_memberships(session, user.id)
        cache.set(user.id, memberships)
    return memberships


def to_user_read(user: User, memberships) -> UserRead:
    return UserRead(
        id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        last_access_date=user.last_access_date,
        created_date=user.created_date,
        updated_date=user.updated_date,
        active=user.active,
        memberships=[MembershipRead(org_id=org_id, role=role) for org_id, role in sorted(memberships.items())],
    )


@router.post("/register", response_model=UserRead)
def register(user_in: UserCreate, session: Session = Depends(get_session)):
    if session.exec(select(User).where(User.username == user_in.username)).first():
        raise HTTPException(status_code=400, detail="Username already registered")
    if session.exec(select(User).where(User.email == user_in.email)).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    user = User(
        username=user_in.username,
        email=user_in.email,
        full_name=user_in.full_name,
        password_hash=get_password_hash(user_in.password),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return to_user_read(user, {})

@router.post("/login", response_model=Token)
def login(form_data: OAuth2PasswordRequestForm = Depends(), session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.username == form_data.username)).first()
    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Incorrect username or password")
    if not user.active:
        raise HTTPException(status_code=403, detail="User inactive")
    user.last_access_date = datetime.utcnow()
    session.add(user)
    session.commit()
    token = create_access_token({"sub": str(user.id)})
    return Token(access_token=token)

def get_current_user(token: str = Depends(oauth2_scheme), session: Session = Depends(get_session)):
    credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
    try:
        payload = decode_access_token(token)
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    user = session.get(User, int(user_id))
    if user is None or not user.active:
        raise credentials_exception
    return user


def get_org_context(
    x_org_id: Optional[int] = Header(default=None),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    cache: MembershipCache = Depends(get_membership_cache),
) -> OrgContext:
    """Resolve the selected organization from ``X-Org-Id`` and the caller's membership.

    There is no default organization: a missing header is an error, and so is
    an organization the caller does not belong to.
    """
    if x_org_id is None:
        raise MissingOrgContextError()
    role = memberships_for(current_user, session, cache).get(x_org_id)
    if role is None:
        raise PermissionDeniedError()
    return OrgContext(user_id=current_user.id, org_id=x_org_id, role=Role.parse(role))


def require_roles(*roles: Role):
    """Dependency factory: the org role must be one of ``roles``."""
    def dependency(ctx: OrgContext = Depends(get_org_context)) -> OrgContext:
        if ctx.role not in roles:
            raise PermissionDeniedError()
        return ctx
    return dependency


@router.get("/me", response_model=UserRead)
def me(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    cache: MembershipCache = Depends(get_membership_cache),
):
    return to_user_read(current_user, memberships_for(current_user, session, cache))


@router.put("/me", response_model=UserRead)
def update_me(
    user_update: UserUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    cache: MembershipCache = Depends(get_membership_cache),
):
    if user_update.username is not None and user_update.username != current_user.username:
        if session.exec(select(User).where(User.username == user_update.username)).first():
            raise HTTPException(status_code=400, detail="Username already registered")
        current_user.username = user_update.username
    if user_update.email is not None and user_update.email != current_user.email:
        if session.exec(select(User).where(User.email == user_update.email)).first():
            raise HTTPException(status_code=400, detail="Email already registered")
        current_user.email = user_update.email
    if user_update.full_name is not None:
        current_user.full_name = user_update.full_name

    current_user.updated_date = datetime.utcnow()
    session.add(current_user)
    session.commit()
    session.refresh(current_user)
    return to_user_read(current_user, memberships_for(current_user, session, cache))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    current_user: User = Depends(get_current_user),
    cache: MembershipCache = Depends(get_membership_cache),
):
    cache.invalidate(current_user.id)
