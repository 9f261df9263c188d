"""Tests for the in-memory document store."""

import pytest

from familybudget.services.storage import (
    OP_ARRAY_CONTAINS,
    OP_EQUAL,
    OP_GREATER_OR_EQUAL,
    DocumentNotFoundError,
    Filter,
    MemoryDocumentStore,
    StorageError,
)


pytestmark = pytest.mark.asyncio


class TestMemoryDocumentStore:

    async def test_returned_documents_are_copies(self):
        store = MemoryDocumentStore()
        await store.set("budgets", "b1", {"transactions": [{"id": "t1"}]})
        data = await store.get("budgets", "b1")
        data["transactions"].append({"id": "t2"})
        assert await store.get("budgets", "b1") == {"transactions": [{"id": "t1"}]}

    async def test_merge_replaces_lists_and_merges_maps(self):
        store = MemoryDocumentStore()
        await store.set("budgets", "b1", {"label": "June", "meta": {"a": 1}, "transactions": [1, 2]})
        await store.set("budgets", "b1", {"meta": {"b": 2}, "transactions": [3]}, merge=True)
        assert await store.get("budgets", "b1") == {
            "label": "June",
            "meta": {"a": 1, "b": 2},
            "transactions": [3],
        }

    async def test_query_operators_and_limit(self):
        store = MemoryDocumentStore()
        await store.set("families", "f1", {"memberUids": ["u1", "u2"], "size": 2})
        await store.set("families", "f2", {"memberUids": ["u2"], "size": 1})

        contains = await store.query("families", [Filter("memberUids", OP_ARRAY_CONTAINS, "u2")])
        assert [d.id for d in contains] == ["f1", "f2"]
        assert len(await store.query("families", [Filter("memberUids", OP_ARRAY_CONTAINS, "u2")], limit=1)) == 1
        assert [d.id for d in await store.query("families", [Filter("size", OP_EQUAL, 1)])] == ["f2"]
        assert [d.id for d in await store.query("families", [Filter("size", OP_GREATER_OR_EQUAL, 2)])] == ["f1"]

    async def test_unsupported_operator(self):
        store = MemoryDocumentStore()
        await store.set("families", "f1", {"size": 2})
        with pytest.raises(StorageError):
            await store.query("families", [Filter("size", "<", 3)])

    async def test_array_union_and_remove(self):
        store = MemoryDocumentStore()
        await store.set("sharedBudgets", "s1", {"budgetIds": ["a"]})
        await store.array_union("sharedBudgets", "s1", "budgetIds", ["a", "b"])
        assert (await store.get("sharedBudgets", "s1"))["budgetIds"] == ["a", "b"]
        await store.array_remove("sharedBudgets", "s1", "budgetIds", ["a"])
        assert (await store.get("sharedBudgets", "s1"))["budgetIds"] == ["b"]

        with pytest.raises(DocumentNotFoundError):
            await store.array_union("sharedBudgets", "ghost", "budgetIds", ["a"])

    async def test_transact_writes_result_and_aborts_on_error(self):
        store = MemoryDocumentStore()
        await store.set("budgets", "b1", {"count": 1})

        written = await store.transact("budgets", "b1", lambda data: {"count": data["count"] + 1})
        assert written == {"count": 2}

        def explode(data):
            raise ValueError("abort")

        with pytest.raises(ValueError):
            await store.transact("budgets", "b1", explode)
        assert await store.get("budgets", "b1") == {"count": 2}

    async def test_batch_commits_together(self):
        store = MemoryDocumentStore()
        await store.set("budgets", "b1", {"label": "June"})

        batch = store.batch()
        batch.set("budgets", "b1", {"label": "July"}, merge=True)
        batch.set("importedTransactions", "d1", {"importedTransactions": []})
        batch.delete("budgets", "missing")
        assert batch.size == 3
        assert (await store.get("budgets", "b1"))["label"] == "June"

        await batch.commit()
        assert (await store.get("budgets", "b1"))["label"] == "July"
        assert await store.get("importedTransactions", "d1") == {"importedTransactions": []}

        with pytest.raises(StorageError):
            await batch.commit()
