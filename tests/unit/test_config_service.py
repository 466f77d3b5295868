"""
Tests for the job-finder configuration service.
"""

import unittest

from jobfinder_sync.documents.DocumentStore import DocumentStore
from jobfinder_sync.exceptions import AuthenticationError, ValidationError
from jobfinder_sync.models.config_types import DEFAULT_RESUME_PROMPT, PromptConfig, QueueSettings
from jobfinder_sync.services.config_service import (
    JobFinderConfigService,
    defaults_for,
    extract_variables,
    validate_prompt,
)
from jobfinder_sync.util.identity import StaticIdentity
from jobfinder_sync.util.retry import RetryPolicy
from tests.util.fake_firestore import FakeFirestoreDb


class TestJobFinderConfigService(unittest.IsolatedAsyncioTestCase):
    """Test cases for JobFinderConfigService."""

    def setUp(self):
        self.db = FakeFirestoreDb()
        self.store = DocumentStore(self.db, retry_policy=RetryPolicy(base_delay_seconds=0))
        self.service = JobFinderConfigService(self.store, StaticIdentity("user-1", "user1@example.com"))

    def writes(self):
        return self.db.calls["set"] + self.db.calls["update"]

    async def test_stop_list_absent_until_saved(self):
        self.assertIsNone(await self.service.get_stop_list())

    async def test_first_add_creates_stop_list_with_defaults(self):
        stop_list = await self.service.add_excluded_company("Acme")

        self.assertEqual(stop_list.excludedCompanies, ["Acme"])
        self.assertEqual(stop_list.updatedBy, "user1@example.com")
        raw = self.db.raw("job-finder-config", "stop-list")
        self.assertEqual(raw["excludedKeywords"], [])
        self.assertEqual(raw["excludedDomains"], [])
        self.assertIn("createdAt", raw)
        self.assertIn("updatedAt", raw)
        self.assertEqual(self.db.calls["set"], 1)

    async def test_adding_a_listed_entry_writes_nothing(self):
        await self.service.add_excluded_keyword("crypto")
        before = self.writes()

        stop_list = await self.service.add_excluded_keyword("  crypto ")

        self.assertEqual(stop_list.excludedKeywords, ["crypto"])
        self.assertEqual(self.writes(), before)

    async def test_update_existing_stop_list_dedupes_and_keeps_other_fields(self):
        self.db.seed("job-finder-config", "stop-list", {
            "excludedCompanies": ["Acme"], "excludedKeywords": [], "excludedDomains": ["spam.io"],
        })

        stop_list = await self.service.update_stop_list(
            {"excludedKeywords": [" crypto ", "crypto", "gambling"], "updatedBy": "someone-else"}
        )

        self.assertEqual(stop_list.excludedKeywords, ["crypto", "gambling"])
        self.assertEqual(stop_list.excludedCompanies, ["Acme"])
        self.assertEqual(stop_list.excludedDomains, ["spam.io"])
        self.assertEqual(stop_list.updatedBy, "user1@example.com")
        self.assertEqual(self.db.calls["update"], 1)
        self.assertEqual(self.db.calls["set"], 0)

    async def test_remove_entries(self):
        await self.service.add_excluded_domain("spam.io")
        await self.service.add_excluded_domain("ads.net")

        stop_list = await self.service.remove_excluded_domain("spam.io")
        self.assertEqual(stop_list.excludedDomains, ["ads.net"])

        before = self.writes()
        unchanged = await self.service.remove_excluded_domain("never-listed.org")
        self.assertEqual(unchanged.excludedDomains, ["ads.net"])
        self.assertEqual(self.writes(), before)

    async def test_remove_without_stop_list_is_noop(self):
        self.assertIsNone(await self.service.remove_excluded_company("Acme"))
        self.assertEqual(self.writes(), 0)

    async def test_invalid_entries_rejected(self):
        for entries in (["ok", ""], ["ok", 3], "not-a-list"):
            with self.subTest(entries=entries):
                with self.assertRaises(ValidationError):
                    await self.service.update_stop_list({"excludedCompanies": entries})
        with self.assertRaises(ValidationError):
            await self.service.add_excluded_company("   ")
        self.assertEqual(self.writes(), 0)

    async def test_queue_settings_created_from_defaults(self):
        self.assertIsNone(await self.service.get_queue_settings())

        settings = await self.service.update_queue_settings({"maxRetries": 5})

        self.assertEqual(settings.maxRetries, 5)
        self.assertEqual(settings.retryDelaySeconds, 300)
        self.assertEqual(settings.processingTimeout, 600)
        self.assertEqual((await self.service.get_queue_settings()).maxRetries, 5)

    async def test_queue_settings_type_checked(self):
        with self.assertRaises(ValidationError):
            await self.service.update_queue_settings({"maxRetries": "lots"})
        self.assertEqual(self.writes(), 0)

    async def test_ai_settings_update_existing(self):
        self.db.seed("job-finder-config", "ai-settings", {
            "provider": "openai", "model": "gpt-4o", "minMatchScore": 80, "costBudgetDaily": 5.0,
        })

        settings = await self.service.update_ai_settings({"minMatchScore": 65})

        self.assertEqual(settings.provider, "openai")
        self.assertEqual(settings.minMatchScore, 65)
        self.assertEqual(self.db.raw("job-finder-config", "ai-settings")["updatedBy"], "user1@example.com")

    async def test_ai_settings_defaults_on_create(self):
        settings = await self.service.update_ai_settings({"costBudgetDaily": 2.5})

        self.assertEqual(settings.provider, "claude")
        self.assertEqual(settings.model, "claude-sonnet-4")
        self.assertEqual(settings.minMatchScore, 70)
        self.assertEqual(settings.costBudgetDaily, 2.5)

    async def test_writes_require_identity(self):
        service = JobFinderConfigService(self.store, StaticIdentity(None))

        with self.assertRaises(AuthenticationError):
            await service.add_excluded_company("Acme")
        with self.assertRaises(AuthenticationError):
            await service.save_prompts(PromptConfig())
        self.assertEqual(self.writes(), 0)

    async def test_updated_by_falls_back_to_uid(self):
        service = JobFinderConfigService(self.store, StaticIdentity("user-7"))

        settings = await service.update_queue_settings(QueueSettings(maxRetries=1))

        self.assertEqual(settings.updatedBy, "user-7")

    async def test_prompts_default_until_saved(self):
        prompts = await self.service.get_prompts()

        self.assertEqual(prompts.resumeGeneration, DEFAULT_RESUME_PROMPT)
        self.assertIsNone(prompts.updatedBy)
        self.assertEqual(self.writes(), 0)

    async def test_save_and_reset_prompts(self):
        saved = await self.service.save_prompts({"resumeGeneration": "Resume for {{jobTitle}}"})

        self.assertEqual(saved.resumeGeneration, "Resume for {{jobTitle}}")
        self.assertEqual(saved.updatedBy, "user1@example.com")
        self.assertEqual((await self.service.get_prompts()).resumeGeneration, "Resume for {{jobTitle}}")

        reset = await self.service.reset_prompts()
        self.assertEqual(reset.resumeGeneration, DEFAULT_RESUME_PROMPT)

    async def test_save_prompts_rejects_non_text(self):
        with self.assertRaises(ValidationError):
            await self.service.save_prompts({"jobMatching": ["not", "text"]})

    async def test_stop_list_subscription(self):
        received = []
        release = self.service.subscribe_to_stop_list(received.append)

        await self.service.add_excluded_company("Acme")

        self.assertIsNone(received[0])
        self.assertEqual(received[-1].excludedCompanies, ["Acme"])
        release()
        self.assertEqual(self.db.active_listeners(), [])


class TestPromptTemplates(unittest.TestCase):
    """Test placeholder extraction and validation."""

    def test_extract_variables_in_order_without_duplicates(self):
        template = "Hi {{name}}, about {{jobTitle}} at {{company}}. Thanks {{name}}! {{ spaced }} {single}"

        self.assertEqual(extract_variables(template), ["name", "jobTitle", "company"])

    def test_validate_prompt(self):
        result = validate_prompt("Write for {{jobTitle}} at {{companyName}}", ["jobTitle", "companyName"])
        self.assertTrue(result.valid)
        self.assertEqual(result.missing, [])

        result = validate_prompt("Write for {{jobTitle}}", ["jobTitle", "companyName", "userSkills"])
        self.assertFalse(result.valid)
        self.assertEqual(result.missing, ["companyName", "userSkills"])

    def test_default_prompts_reference_their_inputs(self):
        prompts = PromptConfig()

        self.assertTrue(validate_prompt(prompts.resumeGeneration, ["jobDescription", "userExperience"]).valid)
        self.assertIn("matchReason", extract_variables(prompts.coverLetterGeneration))
        self.assertEqual(extract_variables(prompts.jobScraping), ["htmlContent"])

    def test_defaults_exclude_audit_fields(self):
        self.assertEqual(defaults_for(QueueSettings), {
            "maxRetries": 3, "retryDelaySeconds": 300, "processingTimeout": 600,
        })


if __name__ == "__main__":
    unittest.main()
