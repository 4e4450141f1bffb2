import logging
import re
from datetime import date
from typing import Optional

from business.errors import ConflictError, NotFoundError, ValidationError
from business.session import Session
from database.documents.collections import COLLECTION_USERS
from database.documents.store import DocumentNotFoundError, DocumentStore, Query
from database.documents.users import User, get_user_by_username, update_user_fields
from utils.constants import MIN_USERNAME_LENGTH
from utils.database import utcnow

logger = logging.getLogger(__name__)

MAX_USERNAME_LENGTH = 20
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")

_UNSET = object()


def display_name(user: User) -> str:
    """First and last name when either is set, otherwise the username."""
    if user.first_name or user.last_name:
        return f"{user.first_name or ''} {user.last_name or ''}".strip()
    return user.username


def validate_username(username: str) -> str:
    if not (MIN_USERNAME_LENGTH <= len(username) <= MAX_USERNAME_LENGTH):
        raise ValidationError(
            f"Username must be between {MIN_USERNAME_LENGTH} and {MAX_USERNAME_LENGTH} characters"
        )
    if not USERNAME_PATTERN.match(username):
        raise ValidationError("Only letters, numbers and underscores")
    return username.lower()


def check_username_available(store: DocumentStore, username: str) -> bool:
    return get_user_by_username(store, username) is None


def register_user(
    store: DocumentStore,
    user_id: str,
    email: str,
    username: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    birthday: Optional[date] = None,
) -> User:
    """
    Create the profile document for a freshly authenticated user.

    Usernames are globally unique and stored lowercase; the availability
    check and the insert run in one store transaction.

    Returns:
        The stored user
    """
    normalized = validate_username(username)

    user = User(
        id=user_id,
        email=email.lower(),
        username=normalized,
        first_name=first_name or None,
        last_name=last_name or None,
        birthday=birthday,
        created_at=utcnow(),
    )

    with store.transaction() as txn:
        if txn.get(COLLECTION_USERS, user_id):
            raise ConflictError("User already registered")
        taken = txn.query(
            Query(COLLECTION_USERS).where("username", "==", normalized).limit(1)
        )
        if taken:
            raise ConflictError("Username is already taken")
        txn.create(COLLECTION_USERS, user_id, user.to_document())

    logger.info(f"Registered user {normalized} with ID: {user_id}")
    return user


def update_profile(
    session: Session,
    first_name=_UNSET,
    last_name=_UNSET,
    birthday=_UNSET,
    photo_url=_UNSET,
) -> User:
    """Change only the provided fields; empty names and birthdays are cleared."""
    fields: dict = {}
    if first_name is not _UNSET:
        fields["firstName"] = first_name or None
    if last_name is not _UNSET:
        fields["lastName"] = last_name or None
    if birthday is not _UNSET:
        fields["birthday"] = birthday.isoformat() if birthday else None
    if photo_url is not _UNSET:
        fields["photoURL"] = photo_url

    try:
        updated = update_user_fields(session.store, session.user_id, fields)
    except DocumentNotFoundError:
        updated = None
    if updated is None:
        raise NotFoundError(f"User {session.user_id} not found")
    session.user = updated
    return updated
