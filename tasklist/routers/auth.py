from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from jose import JWTError, jwt

from ..config import Settings
from ..controller import ControllerRegistry
from ..credentials import CredentialStore
from ..errors import (
    ChecklistError,
    DuplicateUsername,
    InvalidCredentials,
    InvalidTransition,
    PersistFailed,
    QueryFailed,
    SchemaMissing,
    StoreNotConfigured,
    StoreUnavailable,
)
from ..schemas.user import AuthResponse, SessionResponse, UserLogin, UserRead, UserRegister

router = APIRouter()

ALGORITHM = "HS256"
CURRENT_USER_COOKIE = "currentUser"

_ERROR_STATUS = [
    (StoreNotConfigured, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StoreUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (DuplicateUsername, status.HTTP_400_BAD_REQUEST),
    (InvalidCredentials, status.HTTP_401_UNAUTHORIZED),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (SchemaMissing, status.HTTP_409_CONFLICT),
    (QueryFailed, status.HTTP_502_BAD_GATEWAY),
    (PersistFailed, status.HTTP_502_BAD_GATEWAY),
]


def to_http_exception(exc: ChecklistError) -> HTTPException:
    """Map a domain error onto an HTTP error carrying its message."""
    code = next((code for kind, code in _ERROR_STATUS if isinstance(exc, kind)), 500)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, InvalidCredentials) else None
    return HTTPException(status_code=code, detail=exc.message, headers=headers)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_credentials(request: Request) -> CredentialStore:
    return request.app.state.credentials


def get_registry(request: Request) -> ControllerRegistry:
    return request.app.state.controllers


def create_user_token(user: UserRead, secret_key: str) -> str:
    """Serialize the current-user record. No expiry: it lives until logout."""
    to_encode = {
        "sub": str(user.id),
        "username": user.username,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }
    return jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)


def _get_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return request.cookies.get(CURRENT_USER_COOKIE)


def _decode_token(token: str, secret_key: str) -> Optional[UserRead]:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
        return UserRead(
            id=int(payload["sub"]),
            username=payload["username"],
            created_at=_parse_timestamp(payload.get("createdAt")),
            updated_at=_parse_timestamp(payload.get("updatedAt")),
        )
    except (JWTError, KeyError, TypeError, ValueError):
        return None


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _save_user(response: Response, user: UserRead, settings: Settings) -> None:
    response.set_cookie(
        key=CURRENT_USER_COOKIE,
        value=create_user_token(user, settings.secret_key),
        httponly=True,
        secure=False,  # Set to True in production with HTTPS
        samesite="lax",
    )


async def get_current_user(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> Optional[UserRead]:
    """Restore the current user from the session cookie; None when anonymous."""
    token = _get_token_from_request(request)
    if not token:
        return None
    return _decode_token(token, settings.secret_key)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: UserRegister,
    response: Response,
    settings: Settings = Depends(get_settings),
    credentials: CredentialStore = Depends(get_credentials),
):
    """Create an account, seed its checklist and sign it in."""
    try:
        user = credentials.register(payload.username, payload.password)
    except ChecklistError as exc:
        raise to_http_exception(exc)

    _save_user(response, user, settings)
    return {"message": "Registration successful", "user": user}


@router.post("/login", response_model=AuthResponse)
def login(
    payload: UserLogin,
    response: Response,
    settings: Settings = Depends(get_settings),
    credentials: CredentialStore = Depends(get_credentials),
    registry: ControllerRegistry = Depends(get_registry),
):
    """Sign in with username and password."""
    try:
        user = credentials.login(payload.username, payload.password)
    except ChecklistError as exc:
        raise to_http_exception(exc)

    # A new session starts from a fresh load.
    registry.drop(user.id)
    _save_user(response, user, settings)
    return {"message": "Login successful", "user": user}


@router.post("/logout")
async def logout(
    response: Response,
    current_user: Optional[UserRead] = Depends(get_current_user),
    registry: ControllerRegistry = Depends(get_registry),
):
    """Sign out and clear the current-user cookie."""
    if current_user is not None:
        registry.drop(current_user.id)
    response.delete_cookie(key=CURRENT_USER_COOKIE)
    return {"success": True}


@router.get("/session", response_model=SessionResponse)
async def read_session(current_user: Optional[UserRead] = Depends(get_current_user)):
    """Who the current session belongs to, if anyone."""
    return {"user": current_user}
