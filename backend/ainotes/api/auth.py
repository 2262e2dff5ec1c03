from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ainotes.api import notes as notes_api
from ainotes.config import load_settings
from ainotes.models.auth import LoginRequest, SignupRequest, TokenResponse, UserOut
from ainotes.storage.event_log import Event, EventLog
from ainotes.storage.users_store import UserRecord, UsersStore
from ainotes.utils.auth_hash import hash_password, verify_password
from ainotes.utils.jwt_auth import CurrentUser, create_access_token, get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])

settings = load_settings()
users = UsersStore(settings.data_dir)
event_log = EventLog(settings.data_dir)


def _token_for(rec: UserRecord) -> TokenResponse:
    identity = CurrentUser(id=rec.id, name=rec.name, email=rec.email)
    return TokenResponse(access_token=create_access_token(identity), user=UserOut(**rec.public()))


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def signup(req: SignupRequest) -> TokenResponse:
    if users.get_by_email(req.email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists")

    try:
        rec = users.create(req.name, req.email, hash_password(req.password))
    except FileExistsError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already exists")

    event_log.emit(Event(event_type="USER_REGISTERED", user_id=rec.id))
    return _token_for(rec)


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest) -> TokenResponse:
    rec = users.get_by_email(req.email)
    if rec is None or not verify_password(req.password, rec.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    event_log.emit(Event(event_type="USER_LOGGED_IN", user_id=rec.id))
    return _token_for(rec)


@router.get("/me", response_model=UserOut)
def me(user: CurrentUser = Depends(get_current_user)) -> UserOut:
    if user.email:
        return UserOut(id=user.id, name=user.name, email=user.email)

    # header-authenticated demo requests carry only the id
    rec = users.get(user.id)
    if rec is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return UserOut(**rec.public())


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(user: CurrentUser = Depends(get_current_user)) -> None:
    await notes_api.registry.discard(user.id)
    return None
