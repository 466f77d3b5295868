"""
Tests for batched delete and reorder.
"""

import math
import unittest

from google.api_core import exceptions as google_exceptions

from jobfinder_sync.documents.DocumentStore import DocumentStore
from jobfinder_sync.exceptions import BatchAuthorizationError, BatchCommitError, BatchReadError, ValidationError
from jobfinder_sync.models.firestore_types import CONTENT_ITEMS, GENERATOR_DOCUMENTS
from jobfinder_sync.models.util_types import ReorderItem
from jobfinder_sync.services.batch_mutations import BatchMutationEngine
from jobfinder_sync.util.retry import RetryPolicy
from tests.util.fake_firestore import FakeFirestoreDb


class TestBatchMutationEngine(unittest.IsolatedAsyncioTestCase):
    """Test grouping, ownership checks and partial-failure accounting."""

    def setUp(self):
        self.db = FakeFirestoreDb()
        self.store = DocumentStore(self.db, retry_policy=RetryPolicy(max_attempts=1, base_delay_seconds=0))
        self.engine = BatchMutationEngine(self.store, CONTENT_ITEMS)

    def seed(self, count, owner="user-1", prefix="item"):
        ids = [f"{prefix}-{i:04d}" for i in range(count)]
        for index, doc_id in enumerate(ids):
            self.db.seed("content-items", doc_id, {"userId": owner, "type": "project", "order": index})
        return ids

    async def test_delete_over_limit_uses_ceil_groups(self):
        ids = self.seed(1201)

        result = await self.engine.batch_delete(ids, "user-1")

        self.assertEqual(result.committed, 1201)
        self.assertEqual(result.batches_committed, math.ceil(1201 / 500))
        self.assertEqual([len(group) for group in self.db.commits], [500, 500, 201])
        self.assertEqual(self.db.collections["content-items"], {})

    async def test_delete_exactly_one_full_group(self):
        ids = self.seed(500)

        result = await self.engine.batch_delete(ids, "user-1")

        self.assertEqual(result.batches_committed, 1)
        self.assertEqual(result.committed, 500)

    async def test_missing_ids_are_skipped_not_errors(self):
        ids = self.seed(3)

        result = await self.engine.batch_delete([ids[0], "ghost-1", ids[1], "ghost-2", ids[2]], "user-1")

        self.assertEqual(result.committed, 3)
        self.assertEqual(result.skipped_not_found, ["ghost-1", "ghost-2"])
        self.assertEqual(result.committed_ids, ids)
        self.assertFalse(result.halted)

    async def test_repeating_a_delete_is_a_noop(self):
        ids = self.seed(4)
        await self.engine.batch_delete(ids, "user-1")

        result = await self.engine.batch_delete(ids, "user-1")

        self.assertEqual(result.committed, 0)
        self.assertEqual(result.skipped_not_found, ids)
        self.assertEqual(len(self.db.commits), 1)

    async def test_duplicate_ids_counted_once(self):
        ids = self.seed(2)

        result = await self.engine.batch_delete([ids[0], ids[0], ids[1]], "user-1")

        self.assertEqual(result.committed, 2)

    async def test_foreign_owner_halts_and_keeps_earlier_groups(self):
        mine = self.seed(600)
        theirs = self.seed(1, owner="user-2", prefix="foreign")
        after = self.seed(50, prefix="after")

        with self.assertRaises(BatchAuthorizationError) as ctx:
            await self.engine.batch_delete(mine + theirs + after, "user-1")

        result = ctx.exception.result
        self.assertEqual(result.halted_at, theirs[0])
        self.assertEqual(result.committed, 500)
        self.assertEqual(result.batches_committed, 1)
        self.assertIn("not owner of item foreign-0000", str(ctx.exception))
        # The partially filled group and everything after the foreign id stay untouched
        remaining = self.db.collections["content-items"]
        self.assertEqual(len(remaining), 100 + 1 + 50)
        for doc_id in after:
            self.assertIn(doc_id, remaining)

    async def test_foreign_owner_in_first_group_commits_nothing(self):
        mine = self.seed(10)
        theirs = self.seed(1, owner="user-2", prefix="foreign")

        with self.assertRaises(BatchAuthorizationError) as ctx:
            await self.engine.batch_delete(mine[:5] + theirs + mine[5:], "user-1")

        self.assertEqual(ctx.exception.result.committed, 0)
        self.assertEqual(self.db.commits, [])
        self.assertEqual(len(self.db.collections["content-items"]), 11)

    async def test_commit_failure_reports_partial_result(self):
        ids = self.seed(1100)
        original_commit = self.db.commit_batch
        calls = {"n": 0}

        async def failing_second_commit(operations):
            calls["n"] += 1
            if calls["n"] == 2:
                raise google_exceptions.ServiceUnavailable("commit lost")
            await original_commit(operations)

        self.db.commit_batch = failing_second_commit

        with self.assertRaises(BatchCommitError) as ctx:
            await self.engine.batch_delete(ids, "user-1")

        self.assertEqual(ctx.exception.group_index, 1)
        self.assertEqual(ctx.exception.result.committed, 500)
        self.assertEqual(calls["n"], 2)
        self.assertEqual(len(self.db.collections["content-items"]), 600)

    async def test_read_failure_after_first_group_reports_partial_result(self):
        engine = BatchMutationEngine(self.store, CONTENT_ITEMS, batch_size=2)
        ids = self.seed(4)
        original_get = self.db.get
        calls = {"n": 0}

        async def failing_third_get(collection, doc_id):
            calls["n"] += 1
            if calls["n"] == 3:
                raise google_exceptions.ServiceUnavailable("read lost")
            return await original_get(collection, doc_id)

        self.db.get = failing_third_get

        with self.assertRaises(BatchReadError) as ctx:
            await engine.batch_delete(ids, "user-1")

        result = ctx.exception.result
        self.assertEqual(result.committed, 2)
        self.assertEqual(result.committed_ids, ids[:2])
        self.assertEqual(result.batches_committed, 1)
        self.assertEqual(result.halted_at, ids[2])
        self.assertEqual(ctx.exception.resource, ids[2])
        self.assertEqual(len(self.db.commits), 1)
        self.assertEqual(sorted(self.db.collections["content-items"]), ids[2:])

    async def test_reorder_updates_order_and_audit_fields(self):
        ids = self.seed(3)

        result = await self.engine.batch_reorder(
            [ReorderItem(id=ids[0], order=2), {"id": ids[1], "order": 0}, {"id": "ghost", "order": 9}],
            "user-1",
            audit={"updatedBy": "user1@example.com"},
        )

        self.assertEqual(result.committed, 2)
        self.assertEqual(result.skipped_not_found, ["ghost"])
        first = self.db.raw("content-items", ids[0])
        self.assertEqual(first["order"], 2)
        self.assertEqual(first["updatedBy"], "user1@example.com")
        self.assertIn("updatedAt", first)
        self.assertEqual(self.db.raw("content-items", ids[1])["order"], 0)
        self.assertEqual(self.db.raw("content-items", ids[2])["order"], 2)

    async def test_reorder_rejects_foreign_items(self):
        self.seed(1, owner="user-2", prefix="foreign")

        with self.assertRaises(BatchAuthorizationError):
            await self.engine.batch_reorder([{"id": "foreign-0000", "order": 1}], "user-1")

        self.assertEqual(self.db.raw("content-items", "foreign-0000")["order"], 0)

    async def test_custom_batch_size(self):
        engine = BatchMutationEngine(self.store, CONTENT_ITEMS, batch_size=2)
        ids = self.seed(5)

        result = await engine.batch_delete(ids, "user-1")

        self.assertEqual([len(group) for group in self.db.commits], [2, 2, 1])
        self.assertEqual(result.batches_committed, 3)

    def test_batch_size_bounds(self):
        with self.assertRaises(ValidationError):
            BatchMutationEngine(self.store, CONTENT_ITEMS, batch_size=501)

    def test_unowned_collection_rejected(self):
        with self.assertRaises(ValidationError):
            BatchMutationEngine(self.store, GENERATOR_DOCUMENTS)


if __name__ == "__main__":
    unittest.main()
