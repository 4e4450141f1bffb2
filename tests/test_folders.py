import pytest

from business import folders as folder_service
from business import wishlist as wishlist_service
from business.errors import AuthorizationError, NotFoundError, ValidationError
from business.wishlist import ItemData
from database.documents.folder import get_folder
from database.documents.wishlist_item import get_item


def test_create_rename_and_list(store, make_user, session_for):
    owner = make_user()
    session = session_for(owner)

    first = folder_service.create_folder(session, " Birthday ")
    second = folder_service.create_folder(session, "Kitchen")
    renamed = folder_service.rename_folder(session, first.id, "Birthday 2025")

    assert first.name == "Birthday"
    assert renamed.name == "Birthday 2025"
    assert get_folder(store, first.id).name == "Birthday 2025"
    assert [f.id for f in folder_service.list_folders(store, owner.id)] == [second.id, first.id]

    with pytest.raises(ValidationError):
        folder_service.create_folder(session, "   ")


def test_folders_are_owner_only(store, make_user, session_for):
    owner, other = make_user(), make_user()
    folder = folder_service.create_folder(session_for(owner), "Books")

    with pytest.raises(AuthorizationError):
        folder_service.rename_folder(session_for(other), folder.id, "Mine now")
    with pytest.raises(AuthorizationError):
        folder_service.delete_folder(session_for(other), folder.id)
    with pytest.raises(NotFoundError):
        folder_service.delete_folder(session_for(owner), "missing")

    assert get_folder(store, folder.id) is not None


def test_delete_folder_detaches_items(store, make_user, session_for):
    owner = make_user()
    session = session_for(owner)
    folder = folder_service.create_folder(session, "F")
    keep = folder_service.create_folder(session, "G")
    item = wishlist_service.create_item(session, ItemData(name="X", folder_ids=[folder.id, keep.id]))
    loose = wishlist_service.create_item(session, ItemData(name="Y"))

    folder_service.delete_folder(session, folder.id)

    assert get_folder(store, folder.id) is None
    assert get_item(store, item.id).folder_ids == [keep.id]
    assert get_item(store, loose.id).folder_ids == []


def test_items_must_use_own_folders(store, make_user, session_for):
    owner, other = make_user(), make_user()
    foreign = folder_service.create_folder(session_for(other), "Theirs")

    with pytest.raises(AuthorizationError):
        wishlist_service.create_item(session_for(owner), ItemData(name="X", folder_ids=[foreign.id]))
    with pytest.raises(NotFoundError):
        wishlist_service.create_item(session_for(owner), ItemData(name="X", folder_ids=["missing"]))


def test_add_and_remove_item_from_folder(store, make_user, session_for):
    owner = make_user()
    session = session_for(owner)
    folder = folder_service.create_folder(session, "F")
    item = wishlist_service.create_item(session, ItemData(name="X"))

    wishlist_service.add_item_to_folder(session, item.id, folder.id)
    wishlist_service.add_item_to_folder(session, item.id, folder.id)
    assert get_item(store, item.id).folder_ids == [folder.id]

    wishlist_service.remove_item_from_folder(session, item.id, folder.id)
    assert get_item(store, item.id).folder_ids == []

    updated = wishlist_service.set_item_folders(session, item.id, [folder.id, folder.id])
    assert updated.folder_ids == [folder.id]
    assert get_item(store, item.id).folder_ids == [folder.id]


def test_folder_items_follow_item_order(store, make_user, session_for):
    owner = make_user()
    session = session_for(owner)
    folder = folder_service.create_folder(session, "F")
    a, b, c = [
        wishlist_service.create_item(session, ItemData(name=name, folder_ids=[folder.id]))
        for name in ("a", "b", "c")
    ]
    wishlist_service.reorder_items(session, [a.id, b.id, c.id])

    folder = folder_service.reorder_folder_items(session, folder.id, [c.id, a.id])

    items = folder_service.list_folder_items(store, get_folder(store, folder.id))
    # Items missing from the saved order come last
    assert [item.id for item in items] == [c.id, a.id, b.id]
