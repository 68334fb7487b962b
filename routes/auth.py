import logging
import os
from urllib.parse import urlparse

from fastapi import APIRouter, Request, Response, status
from firebase_admin import auth

from dependencies import Accounts, CurrentUser, SESSION_COOKIE
from models.token import TokenRequest
from models.user import RegisterRequest
from services.errors import AuthError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


def _session_expiry_seconds() -> int:
    return int(os.getenv("SESSION_EXPIRES_DAYS", "5")) * 24 * 60 * 60


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, accounts: Accounts):
    """
    Create a Firebase user and its profile, and return a custom token the
    client exchanges for an ID token
    """
    username = body.username.strip()
    if accounts.username_taken(username):
        raise ValidationError("Username is already taken", field="username")

    try:
        user_record = auth.create_user(
            email=body.email,
            password=body.password,
            display_name=username,
        )
    except auth.EmailAlreadyExistsError:
        raise ValidationError("Email is already registered", field="email")
    except ValueError as e:
        raise ValidationError(str(e))

    try:
        account = accounts.create_account(user_record.uid, username, body.email)
    except Exception:
        # Don't leave an auth user without a profile behind
        auth.delete_user(user_record.uid)
        raise

    token = auth.create_custom_token(user_record.uid)
    if isinstance(token, bytes):
        token = token.decode("utf-8")

    return {"user": account, "token": token}


@router.post("/login")
def login(body: TokenRequest, request: Request, response: Response):
    try:
        # Verify the ID token
        decoded_token = auth.verify_id_token(
            id_token=body.id_token,
            clock_skew_seconds=10
        )

        # Create a session cookie
        expires_in = _session_expiry_seconds()
        session_cookie = auth.create_session_cookie(
            body.id_token,
            expires_in=expires_in
        )
    except (auth.InvalidIdTokenError, auth.UserDisabledError, ValueError) as e:
        logger.info("Login failed: %s", e)
        raise AuthError("Authentication failed")

    origin = request.headers.get("origin", "")
    domain = None

    # If in production, extract domain from origin
    if origin and "localhost" not in origin:
        domain = urlparse(origin).hostname

    response.set_cookie(
        key=SESSION_COOKIE,
        value=str(session_cookie),
        httponly=True,
        secure=domain is not None,
        max_age=expires_in,
        path="/",
        samesite="lax",
        domain=domain
    )

    return {"success": True, "user_id": decoded_token["uid"]}


@router.post("/logout")
def logout(response: Response):
    # Clear the session cookie
    response.delete_cookie(
        key=SESSION_COOKIE,
        path="/",
        httponly=True,
    )
    return {"success": True}


@router.get("/me")
def me(current_user: CurrentUser, accounts: Accounts):
    account = accounts.find_account(current_user.user_id)
    if account is None:
        raise NotFoundError("User", current_user.user_id)
    return account
