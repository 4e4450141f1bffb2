"""
Tests for the purchase coordination ledger.
"""
from datetime import datetime, timedelta, timezone

import pytest

from business import purchases as purchase_service
from business.errors import AlreadyPurchasedError, AuthorizationError, NotFoundError, ValidationError
from business.wishlist import ItemData, create_item
from database.documents.purchase import Purchase, list_purchases_by_owner, purchase_id


@pytest.fixture
def owner_and_item(make_user, session_for):
    owner = make_user(first_name="Olivia", last_name="Owner")
    item = create_item(session_for(owner), ItemData(name="Headphones", price=120, currency="USD"))
    return owner, item


def test_buyer_display_name(make_user):
    assert purchase_service.buyer_display_name(make_user(first_name=" Fran ", last_name="")) == "Fran"
    assert purchase_service.buyer_display_name(make_user(first_name="Fran", last_name="Lee")) == "Fran Lee"
    assert purchase_service.buyer_display_name(make_user(username="fran_l")) == "fran_l"


def test_purchase_then_cancel(store, make_user, session_for, owner_and_item):
    owner, item = owner_and_item
    friend = make_user(first_name="Fran")

    purchase = purchase_service.create_purchase(session_for(friend), item.id, owner.id)

    friend_view = purchase_service.list_purchases(session_for(friend), owner.id)
    assert purchase_service.is_purchased(friend_view, item.id)
    assert purchase_service.purchase_for_item(friend_view, item.id).buyer_id == friend.id
    assert purchase_service.list_purchases(session_for(owner), owner.id) == []
    assert purchase_service.item_purchase_view(session_for(owner), item, friend_view) is None

    purchase_service.delete_purchase(session_for(friend), purchase.id)

    friend_view = purchase_service.list_purchases(session_for(friend), owner.id)
    assert not purchase_service.is_purchased(friend_view, item.id)
    assert purchase_service.list_purchases(session_for(owner), owner.id) == []


def test_owner_cannot_claim_own_item(owner_and_item, session_for, store):
    owner, item = owner_and_item

    with pytest.raises(AuthorizationError):
        purchase_service.create_purchase(session_for(owner), item.id, owner.id)
    assert list_purchases_by_owner(store, owner.id) == []


def test_second_claim_is_rejected(make_user, session_for, owner_and_item, store):
    owner, item = owner_and_item
    first, second = make_user(), make_user()

    purchase_service.create_purchase(session_for(first), item.id, owner.id)
    with pytest.raises(AlreadyPurchasedError):
        purchase_service.create_purchase(session_for(second), item.id, owner.id)

    claims = list_purchases_by_owner(store, owner.id)
    assert [claim.buyer_id for claim in claims] == [first.id]


def test_claim_validates_item(make_user, session_for, owner_and_item):
    owner, item = owner_and_item
    friend, other = make_user(), make_user()

    with pytest.raises(NotFoundError):
        purchase_service.create_purchase(session_for(friend), "missing", owner.id)
    with pytest.raises(ValidationError):
        purchase_service.create_purchase(session_for(friend), item.id, other.id)


def test_only_buyer_can_cancel(make_user, session_for, owner_and_item, store):
    owner, item = owner_and_item
    buyer, other = make_user(), make_user()
    purchase = purchase_service.create_purchase(session_for(buyer), item.id, owner.id)

    with pytest.raises(AuthorizationError):
        purchase_service.delete_purchase(session_for(other), purchase.id)

    assert len(list_purchases_by_owner(store, owner.id)) == 1
    # Cancelling a claim that is already gone is a no-op
    purchase_service.delete_purchase(session_for(buyer), purchase.id)
    purchase_service.delete_purchase(session_for(buyer), purchase.id)


def test_owner_cancel_looks_the_same_for_bought_and_unbought_items(
    session_for, owner_and_item, make_user, store
):
    owner, bought = owner_and_item
    unbought = create_item(session_for(owner), ItemData(name="Unbought"))
    buyer = make_user()
    purchase_service.create_purchase(session_for(buyer), bought.id, owner.id)

    results = {}
    for item in (bought, unbought):
        results[item.id] = purchase_service.delete_purchase(session_for(owner), purchase_id(item.id))
        purchase_service.delete_purchase(session_for(owner), purchase_id(item.id), item_owner_id=owner.id)

    assert results == {bought.id: None, unbought.id: None}
    # The claim itself is untouched
    assert [p.item_id for p in list_purchases_by_owner(store, owner.id)] == [bought.id]


def test_item_purchase_view_states(make_user, session_for, owner_and_item):
    owner, item = owner_and_item
    buyer, other = make_user(first_name="Bea"), make_user()

    assert purchase_service.item_purchase_view(session_for(buyer), item, []).state == "claimable"

    purchase_service.create_purchase(session_for(buyer), item.id, owner.id)
    purchases = purchase_service.list_purchases(session_for(buyer), owner.id)

    mine = purchase_service.item_purchase_view(session_for(buyer), item, purchases)
    assert mine.state == "bought_by_you"
    theirs = purchase_service.item_purchase_view(session_for(other), item, purchases)
    assert theirs.state == "bought_by_other"
    assert theirs.buyer_name == "Bea"


def test_earliest_claim_wins_on_read():
    now = datetime.now(timezone.utc)
    claims = [
        Purchase(id="p2", item_id="i", item_owner_id="o", buyer_id="b2", buyer_name="B2", created_at=now),
        Purchase(
            id="p1", item_id="i", item_owner_id="o", buyer_id="b1", buyer_name="B1", created_at=now - timedelta(seconds=5)
        ),
    ]

    assert purchase_service.purchase_for_item(claims, "i").buyer_id == "b1"
    assert purchase_service.purchase_for_item(claims, "other") is None
