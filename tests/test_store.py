"""
Tests for the document store: queries, atomic batches, transactions and
subscriptions.
"""
import pytest

from database.documents.store import (
    ArrayRemove,
    ArrayUnion,
    DocumentExistsError,
    DocumentNotFoundError,
    Query,
    QueryLimitError,
)


def test_add_get_and_delete(store):
    doc_id = store.add("things", {"name": "lamp"})

    doc = store.get("things", doc_id)
    assert doc is not None
    assert doc.get("name") == "lamp"

    store.delete("things", doc_id)
    assert store.get("things", doc_id) is None
    # Deleting again is a no-op
    store.delete("things", doc_id)


def test_create_is_insert_only(store):
    store.create("things", "t1", {"name": "first"})

    with pytest.raises(DocumentExistsError):
        store.create("things", "t1", {"name": "second"})

    assert store.get("things", "t1").get("name") == "first"


def test_update_missing_document_raises(store):
    with pytest.raises(DocumentNotFoundError):
        store.update("things", "missing", {"name": "x"})


def test_set_with_merge_keeps_other_fields(store):
    store.set("things", "t1", {"name": "lamp", "color": "red"})
    store.set("things", "t1", {"color": "blue"}, merge=True)

    assert store.get("things", "t1").data == {"name": "lamp", "color": "blue"}


def test_array_transforms(store):
    store.set("things", "t1", {"tags": ["a", "b"]})

    store.update("things", "t1", {"tags": ArrayUnion("b", "c")})
    assert store.get("things", "t1").get("tags") == ["a", "b", "c"]

    store.update("things", "t1", {"tags": ArrayRemove("a")})
    assert store.get("things", "t1").get("tags") == ["b", "c"]


def test_query_filters_and_ordering(store):
    store.set("things", "a", {"owner": "u1", "rank": 2, "tags": ["x"]})
    store.set("things", "b", {"owner": "u1", "rank": 1, "tags": ["y"]})
    store.set("things", "c", {"owner": "u2", "rank": 0, "tags": ["x"]})
    store.set("things", "d", {"owner": "u1", "tags": ["x"]})

    ordered = store.query(Query("things").where("owner", "==", "u1").order_by("rank"))
    # "d" has no rank and is left out of the ordered result
    assert [doc.id for doc in ordered] == ["b", "a"]

    tagged = store.query(Query("things").where("tags", "array-contains", "x"))
    assert sorted(doc.id for doc in tagged) == ["a", "c", "d"]

    owners = store.query(Query("things").where("owner", "in", ["u2"]))
    assert [doc.id for doc in owners] == ["c"]


def test_cursor_pagination(store):
    for index in range(5):
        store.set("things", f"t{index}", {"rank": index})

    query = Query("things").order_by("rank", descending=True).limit(2)
    first = store.query(query)
    assert [doc.id for doc in first] == ["t4", "t3"]

    second = store.query(query.start_after(query.cursor_for(first[-1])))
    assert [doc.id for doc in second] == ["t2", "t1"]


def test_in_filter_rejects_more_than_thirty_values(store):
    with pytest.raises(QueryLimitError):
        Query("things").where("owner", "in", [str(i) for i in range(31)])

    with pytest.raises(QueryLimitError):
        store.get_many("things", [str(i) for i in range(31)])


def test_batch_is_all_or_nothing(store):
    store.set("things", "t1", {"rank": 1})

    batch = store.batch()
    batch.update("things", "t1", {"rank": 10})
    batch.update("things", "missing", {"rank": 20})
    with pytest.raises(DocumentNotFoundError):
        batch.commit()

    assert store.get("things", "t1").get("rank") == 1


def test_transaction_rolls_back_on_error(store):
    with pytest.raises(RuntimeError):
        with store.transaction() as txn:
            txn.set("things", "t1", {"rank": 1})
            raise RuntimeError("boom")

    assert store.get("things", "t1") is None


def test_subscription_delivers_full_result_sets(store):
    snapshots = []
    subscription = store.subscribe(
        Query("things").where("owner", "==", "u1"),
        lambda docs: snapshots.append(sorted(doc.id for doc in docs)),
    )

    store.set("things", "a", {"owner": "u1"})
    store.set("things", "b", {"owner": "u2"})  # not part of the result, no delivery
    store.set("things", "c", {"owner": "u1"})

    assert snapshots == [[], ["a"], ["a", "c"]]

    subscription.unsubscribe()
    store.delete("things", "a")
    assert snapshots[-1] == ["a", "c"]


def test_failing_listener_does_not_break_writes(store):
    def listener(docs):
        if docs:
            raise RuntimeError("listener failed")

    store.subscribe(Query("things"), listener)
    store.set("things", "a", {"owner": "u1"})

    assert store.get("things", "a") is not None
