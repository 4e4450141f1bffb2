import logging
from typing import Dict, Optional

import jwt
from fastapi import Depends, HTTPException, Request
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from business.session import Session
from database.documents.store import DocumentStore
from database.documents.users import get_user_by_id
from integrations.storage import ImageStorage
from models.auth_user import AuthUser
from utils.constants import COOKIE_NAME, JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET

logger = logging.getLogger(__name__)


def parse_cookies(cookie_header: str) -> Dict[str, str]:
    """Parse cookie header string into a dictionary"""
    cookies = {}
    if cookie_header:
        for cookie in cookie_header.split(";"):
            if "=" in cookie:
                key, value = cookie.strip().split("=", 1)
                cookies[key.strip()] = value
    return cookies


def extract_token_from_request(request: Request) -> Optional[str]:
    """Extract JWT token from Authorization header or cookies"""
    token = None

    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split(" ")[1]

    if not token:
        cookie_header = request.headers.get("cookie")
        if cookie_header:
            cookies = parse_cookies(cookie_header)
            token = cookies.get(COOKIE_NAME)

    return token


def verify_token(token: str) -> AuthUser:
    """Verify JWT token and return the identity it carries"""
    if not JWT_SECRET:
        raise HTTPException(status_code=500, detail="Server misconfiguration")

    try:
        decoded = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = decoded.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    return AuthUser(
        id=user_id,
        email=decoded.get("email", ""),
        name=decoded.get("name"),
        picture=decoded.get("picture"),
        email_verified=decoded.get("email_verified"),
        exp=decoded.get("exp"),
    )


def get_current_user(request: Request) -> AuthUser:
    """Dependency to get current authenticated identity"""
    token = extract_token_from_request(request)

    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    return verify_token(token)


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_image_storage(request: Request) -> Optional[ImageStorage]:
    return getattr(request.app.state, "image_storage", None)


def get_session(
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_store),
    storage: Optional[ImageStorage] = Depends(get_image_storage),
) -> Session:
    """Dependency building the session of a registered user"""
    user = get_user_by_id(store, current_user.id)
    if user is None:
        logger.info(f"Authenticated user {current_user.id} has no profile yet")
        raise HTTPException(status_code=403, detail="Profile not registered")
    return Session(user=user, store=store, storage=storage)
