from datetime import date

import pytest

from business import user as user_service
from business.errors import ConflictError, NotFoundError, ValidationError
from database.documents.users import get_user_by_id


def test_register_user_normalizes_and_reserves_username(store):
    user = user_service.register_user(store, "uid-1", "Ada@Example.com", "Ada_L", first_name="Ada")

    assert user.username == "ada_l"
    assert user.email == "ada@example.com"
    assert get_user_by_id(store, "uid-1").username == "ada_l"
    assert not user_service.check_username_available(store, "ADA_L")
    assert user_service.check_username_available(store, "grace")

    with pytest.raises(ConflictError):
        user_service.register_user(store, "uid-2", "other@example.com", "ada_L")
    with pytest.raises(ConflictError):
        user_service.register_user(store, "uid-1", "ada@example.com", "another")


@pytest.mark.parametrize("username", ["ab", "a" * 21, "has space", "dash-ed"])
def test_invalid_usernames(store, username):
    with pytest.raises(ValidationError):
        user_service.register_user(store, "uid-1", "x@example.com", username)


def test_update_profile_changes_only_given_fields(store, make_user, session_for):
    user = make_user(first_name="Ada", last_name="Lovelace")
    session = session_for(user)

    updated = user_service.update_profile(session, last_name="", birthday=date(1815, 12, 10))

    assert updated.first_name == "Ada"
    assert updated.last_name is None
    assert updated.birthday == date(1815, 12, 10)
    assert session.user.birthday == date(1815, 12, 10)


def test_update_profile_of_missing_user(store, make_user, session_for):
    user = make_user()
    store.delete("users", user.id)

    with pytest.raises(NotFoundError):
        user_service.update_profile(session_for(user), first_name="Ghost")


def test_display_name(make_user):
    assert user_service.display_name(make_user(first_name="Ada", last_name="Lovelace")) == "Ada Lovelace"
    assert user_service.display_name(make_user(username="grace_h")) == "grace_h"
