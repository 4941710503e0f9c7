import pytest

from botparts.errors import NotFoundError, StoreUnavailableError
from botparts.store import MemoryDocumentStore, SqliteDocumentStore, split_document_path

from tests.conftest import within


COLLECTION = "artifacts/app/users/u1/builds"


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryDocumentStore()
    return SqliteDocumentStore(tmp_path / "documents.sqlite")


def test_split_document_path():
    assert split_document_path(f"{COLLECTION}/b1") == (COLLECTION, "b1")
    with pytest.raises(ValueError):
        split_document_path("b1")


@pytest.mark.anyio
async def test_create_and_list_in_insertion_order(store):
    first = await store.create(COLLECTION, {"name": "one"})
    second = await store.create(COLLECTION, {"name": "two"})
    await store.create("artifacts/app/users/u2/builds", {"name": "other user"})

    documents = await store.list_documents(COLLECTION)
    assert [document.id for document in documents] == [first, second]
    assert documents[0].fields == {"name": "one"}


@pytest.mark.anyio
async def test_overwrite_replaces_only_named_fields(store):
    doc_id = await store.create(COLLECTION, {"name": "one", "components": [{"id": "a"}]})
    await store.overwrite(f"{COLLECTION}/{doc_id}", {"components": []})

    document = await store.get_document(f"{COLLECTION}/{doc_id}")
    assert document is not None
    assert document.fields == {"name": "one", "components": []}


@pytest.mark.anyio
async def test_overwrite_missing_document_raises(store):
    with pytest.raises(NotFoundError):
        await store.overwrite(f"{COLLECTION}/missing", {"components": []})
    assert await store.get_document(f"{COLLECTION}/missing") is None


@pytest.mark.anyio
async def test_watch_emits_initial_set_then_every_write(store):
    existing = await store.create(COLLECTION, {"name": "one"})
    watch = store.watch(COLLECTION)

    initial = await within(watch.__anext__())
    assert [document.id for document in initial] == [existing]

    added = await store.create(COLLECTION, {"name": "two"})
    await store.overwrite(f"{COLLECTION}/{existing}", {"name": "uno"})

    after_create = await within(watch.__anext__())
    after_overwrite = await within(watch.__anext__())
    assert [document.id for document in after_create] == [existing, added]
    assert after_create[0].fields["name"] == "one"
    assert after_overwrite[0].fields["name"] == "uno"

    watch.cancel()
    with pytest.raises(StopAsyncIteration):
        await watch.__anext__()
    assert store._watches == {}


@pytest.mark.anyio
async def test_writes_to_other_collections_do_not_wake_watch(store):
    watch = store.watch(COLLECTION)
    assert await within(watch.__anext__()) == []

    await store.create("artifacts/app/users/u2/builds", {"name": "other"})
    await store.create(COLLECTION, {"name": "mine"})

    update = await within(watch.__anext__())
    assert [document.fields["name"] for document in update] == ["mine"]
    watch.cancel()


@pytest.mark.anyio
async def test_closed_store_rejects_calls_and_ends_watches(store):
    watch = store.watch(COLLECTION)
    await within(watch.__anext__())
    await store.close()

    with pytest.raises(StopAsyncIteration):
        await within(watch.__anext__())
    with pytest.raises(StoreUnavailableError):
        await store.create(COLLECTION, {"name": "late"})


@pytest.mark.anyio
async def test_sqlite_documents_survive_reopen(tmp_path):
    path = tmp_path / "documents.sqlite"
    doc_id = await SqliteDocumentStore(path).create(COLLECTION, {"name": "kept", "price": 1.5})

    reopened = SqliteDocumentStore(path)
    document = await reopened.get_document(f"{COLLECTION}/{doc_id}")
    assert document is not None
    assert document.fields == {"name": "kept", "price": 1.5}
