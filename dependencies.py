import logging
from typing import Annotated

from fastapi import Request, Depends
from firebase_admin import auth

from models.user import User
from services.accounts import AccountStore
from services.errors import AuthError
from services.feed import FeedAssembler
from services.posts import PostRepository
from services.s3 import S3Service

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"


def _decode_caller(request: Request) -> dict:
    authorization = request.headers.get("Authorization")
    if authorization:
        if not authorization.startswith("Bearer "):
            raise AuthError("Invalid authorization header")
        token = authorization.split("Bearer ")[1]
        return auth.verify_id_token(token, check_revoked=True, clock_skew_seconds=10)

    session_cookie = request.cookies.get(SESSION_COOKIE)
    if session_cookie:
        return auth.verify_session_cookie(session_cookie, check_revoked=True, clock_skew_seconds=10)

    raise AuthError("Missing credentials")


async def get_current_user(request: Request) -> User:
    """
    Verify the Firebase ID token from the Authorization header, or the
    session cookie set at login, and return the caller
    """
    try:
        decoded_token = _decode_caller(request)
    except (auth.InvalidIdTokenError, auth.InvalidSessionCookieError, auth.UserDisabledError, ValueError) as e:
        logger.info("Invalid authentication token: %s", e)
        raise AuthError("Invalid authentication token")

    return User(
        user_id=decoded_token["uid"],
        email=decoded_token.get("email"),
    )


async def get_account_store(request: Request) -> AccountStore:
    """Get account store from app state"""
    return request.app.state.account_store


async def get_post_repository(request: Request) -> PostRepository:
    """Get post repository from app state"""
    return request.app.state.post_repository


async def get_feed(request: Request) -> FeedAssembler:
    """Get feed assembler from app state"""
    return request.app.state.feed


async def get_s3_service(request: Request) -> S3Service:
    """Get S3 service from app state"""
    return request.app.state.s3_service


# Type annotations for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
Accounts = Annotated[AccountStore, Depends(get_account_store)]
Posts = Annotated[PostRepository, Depends(get_post_repository)]
Feed = Annotated[FeedAssembler, Depends(get_feed)]
S3 = Annotated[S3Service, Depends(get_s3_service)]
