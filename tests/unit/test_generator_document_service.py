"""
Tests for the generator documents service.
"""

import unittest
from datetime import datetime, timedelta, timezone

from jobfinder_sync.documents.DocumentStore import DocumentStore
from jobfinder_sync.documents.SubscriptionCache import SubscriptionCache
from jobfinder_sync.exceptions import AuthenticationError
from jobfinder_sync.models.firestore_types import GeneratorDocumentDoc
from jobfinder_sync.models.util_types import HistoryDocumentType
from jobfinder_sync.services.generator_document_service import GeneratorDocumentService, to_history_items
from jobfinder_sync.util.identity import StaticIdentity
from jobfinder_sync.util.retry import RetryPolicy
from tests.util.fake_firestore import FakeFirestoreDb

BASE_TIME = datetime(2024, 6, 1, tzinfo=timezone.utc)


class TestGeneratorDocumentService(unittest.IsolatedAsyncioTestCase):
    """Test cases for GeneratorDocumentService."""

    def setUp(self):
        self.db = FakeFirestoreDb()
        self.store = DocumentStore(self.db, retry_policy=RetryPolicy(base_delay_seconds=0))
        self.cache = SubscriptionCache(self.store)
        self.service = GeneratorDocumentService(self.store, StaticIdentity("user-1"), self.cache)

        rows = [
            ("req-1", "request", "resume", "completed", {"role": "Backend Engineer", "company": "Acme"}),
            ("resp-1", "response", None, None, None),
            ("req-2", "request", "coverLetter", "processing", {"role": "Data Engineer", "company": "Globex"}),
            ("req-3", "request", "both", "pending", {"role": "SRE", "company": "Initech"}),
        ]
        for offset, (doc_id, doc_type, generate_type, status, job) in enumerate(rows):
            self.db.seed("generator-documents", doc_id, {
                "type": doc_type,
                "generateType": generate_type,
                "status": status,
                "job": job,
                "access": {"userId": "user-2"},
                "createdAt": BASE_TIME + timedelta(minutes=offset),
            })
        self.db.collections["generator-documents"]["req-3"]["jobMatchId"] = "m4"

    def tearDown(self):
        self.cache.clear()

    async def test_documents_newest_first_for_every_user(self):
        documents = await self.service.get_documents()

        self.assertEqual([d.id for d in documents], ["req-3", "req-2", "resp-1", "req-1"])

    async def test_history_keeps_requests_only(self):
        history = await self.service.get_history()

        self.assertEqual([h.id for h in history], ["req-3", "req-2", "req-1"])
        self.assertEqual(
            [h.type for h in history],
            [HistoryDocumentType.BOTH, HistoryDocumentType.COVER_LETTER, HistoryDocumentType.RESUME],
        )
        self.assertEqual(history[0].jobTitle, "SRE")
        self.assertEqual(history[0].companyName, "Initech")
        self.assertEqual(history[0].jobMatchId, "m4")
        self.assertEqual(history[0].status, "pending")
        self.assertEqual(history[0].createdAt, BASE_TIME + timedelta(minutes=3))
        self.assertIsNone(history[1].jobMatchId)

    async def test_history_limit(self):
        history = await self.service.get_history(limit=2)

        self.assertEqual([h.id for h in history], ["req-3", "req-2"])

    async def test_delete_document(self):
        await self.service.delete_document("req-1")

        self.assertIsNone(await self.service.get_document("req-1"))
        self.assertIsNotNone(await self.service.get_document("req-2"))

    async def test_requires_signed_in_user(self):
        service = GeneratorDocumentService(self.store, StaticIdentity(None), self.cache)

        with self.assertRaises(AuthenticationError):
            await service.get_history()
        with self.assertRaises(AuthenticationError):
            await service.delete_document("req-1")
        with self.assertRaises(AuthenticationError):
            service.subscribe_to_history(lambda items: None)
        self.assertEqual(len(self.db.collections["generator-documents"]), 4)

    async def test_history_and_documents_share_one_listener(self):
        history, documents = [], []
        release_history = self.service.subscribe_to_history(history.append)
        release_documents = self.service.subscribe_to_documents(documents.append)

        self.assertEqual(self.db.calls["listen"], 1)
        self.assertEqual([h.id for h in history[-1]], ["req-3", "req-2", "req-1"])
        self.assertEqual(len(documents[-1]), 4)

        await self.service.delete_document("req-2")

        self.assertEqual([h.id for h in history[-1]], ["req-3", "req-1"])
        self.assertEqual(len(documents[-1]), 3)
        release_history()
        release_documents()
        self.assertEqual(self.db.active_listeners(), [])


class TestToHistoryItems(unittest.TestCase):
    """Test the request-to-history transform."""

    def test_missing_job_and_unknown_generate_type(self):
        documents = [
            GeneratorDocumentDoc(id="a", type="request", generateType="poster", job=None),
            GeneratorDocumentDoc(id="b", type="response", generateType="resume"),
        ]

        history = to_history_items(documents)

        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].type, HistoryDocumentType.RESUME)
        self.assertEqual((history[0].jobTitle, history[0].companyName), ("", ""))
        self.assertIsNone(history[0].createdAt)


if __name__ == "__main__":
    unittest.main()
