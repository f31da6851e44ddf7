import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from plume.errors import NotFound
from plume.store import MemoryStore, coerce_id


@pytest.mark.asyncio
async def test_create_assigns_increasing_ids_and_overwrites_supplied_id():
    store = MemoryStore()
    first = await store.create({"text": "a", "id": 42})
    second = await store.create({"text": "b"})
    assert first == {"id": 1, "text": "a"}
    assert second["id"] == 2


@pytest.mark.asyncio
async def test_ids_are_not_reused_after_remove():
    store = MemoryStore()
    await store.create({"text": "a"})
    last = await store.create({"text": "b"})
    await store.remove(last["id"])
    again = await store.create({"text": "c"})
    assert again["id"] == 3


@pytest.mark.asyncio
async def test_find_preserves_insertion_order_and_ignores_query():
    store = MemoryStore()
    for text in ("a", "b", "c"):
        await store.create({"text": text})
    found = await store.find({"text": "b"})
    assert [record["text"] for record in found] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_get_accepts_string_ids():
    store = MemoryStore()
    await store.create({"text": "a"})
    assert (await store.get("1"))["text"] == "a"


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", [5, "5", "abc", None])
async def test_get_missing_raises_not_found(missing):
    store = MemoryStore()
    await store.create({"text": "a"})
    with pytest.raises(NotFound, match="not found"):
        await store.get(missing)


@pytest.mark.asyncio
async def test_patch_merges_and_keeps_id():
    store = MemoryStore()
    await store.create({"text": "a", "counter": 1})
    patched = await store.patch(1, {"text": "b", "id": 9})
    assert patched == {"id": 1, "text": "b", "counter": 1}
    assert await store.get(1) == patched


@pytest.mark.asyncio
async def test_update_replaces_all_fields_but_id():
    store = MemoryStore()
    await store.create({"text": "a", "counter": 1})
    updated = await store.update(1, {"text": "b"})
    assert updated == {"id": 1, "text": "b"}


@pytest.mark.asyncio
async def test_remove_returns_record_and_deletes_it():
    store = MemoryStore()
    created = await store.create({"text": "a"})
    removed = await store.remove(created["id"])
    assert removed == created
    assert await store.find() == []
    with pytest.raises(NotFound):
        await store.remove(created["id"])


@pytest.mark.asyncio
async def test_returned_records_are_copies():
    store = MemoryStore()
    created = await store.create({"text": "a"})
    created["text"] = "mutated"
    assert (await store.get(1))["text"] == "a"


def test_coerce_id():
    assert coerce_id(3) == 3
    assert coerce_id(" 3 ") == 3
    assert coerce_id("x") is None
    assert coerce_id(True) is None


def test_coerce_id_rejects_values_outside_64_bit_range():
    assert coerce_id(2**63 - 1) == 2**63 - 1
    assert coerce_id(2**63) is None
    assert coerce_id("99999999999999999999") is None
    assert coerce_id(-(2**63)) == -(2**63)


@pytest.mark.asyncio
async def test_get_out_of_range_id_raises_not_found():
    store = MemoryStore()
    await store.create({"text": "a"})
    with pytest.raises(NotFound):
        await store.get("99999999999999999999")
