"""
Job-finder configuration service.

Reads and writes the shared documents of the ``job-finder-config``
collection: the stop list, queue settings, AI settings and the AI prompt
templates. Every write stamps ``updatedBy`` with the acting identity.
Updates to a missing document create it from the defaults first.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from jobfinder_sync.apis.Db import Unsubscribe
from jobfinder_sync.documents.DocumentStore import DocumentStore
from jobfinder_sync.documents.SubscriptionCache import SubscriptionCache
from jobfinder_sync.exceptions import ValidationError
from jobfinder_sync.models.config_types import (
    AI_PROMPTS_ID,
    AI_SETTINGS_ID,
    AUDIT_FIELDS,
    QUEUE_SETTINGS_ID,
    STOP_LIST_ID,
    AISettings,
    PromptConfig,
    PromptValidation,
    QueueSettings,
    StopList,
)
from jobfinder_sync.models.firestore_types import JOB_FINDER_CONFIG, JobFinderConfigDoc
from jobfinder_sync.util.identity import IdentityProvider
from jobfinder_sync.util.logger import get_logger

logger = get_logger(__name__)

ConfigT = TypeVar("ConfigT", bound=JobFinderConfigDoc)
ConfigUpdate = Union[BaseModel, Mapping[str, Any]]

PROMPT_VARIABLE = re.compile(r"\{\{(\w+)\}\}")
STOP_LIST_FIELDS = ("excludedCompanies", "excludedKeywords", "excludedDomains")


def extract_variables(template: str) -> List[str]:
    """Distinct ``{{name}}`` placeholders in order of first use."""
    return list(dict.fromkeys(PROMPT_VARIABLE.findall(template)))


def validate_prompt(template: str, required_variables: Sequence[str]) -> PromptValidation:
    found = set(extract_variables(template))
    missing = [name for name in required_variables if name not in found]
    return PromptValidation(valid=not missing, missing=missing)


def defaults_for(model: Type[ConfigT]) -> Dict[str, Any]:
    """Seed values written when a config document is created."""
    return model().model_dump(exclude=AUDIT_FIELDS, exclude_none=True)


def _dedupe_entries(field: str, values: Any) -> List[str]:
    if isinstance(values, str) or not isinstance(values, (list, tuple)):
        raise ValidationError(f"{field} must be a list of strings", field=field)
    cleaned = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{field} entries must be non-empty strings", field=field)
        cleaned.append(value.strip())
    return list(dict.fromkeys(cleaned))


class JobFinderConfigService:
    """Service for the shared job-finder configuration documents."""

    def __init__(self, store: DocumentStore, identity: IdentityProvider, cache: Optional[SubscriptionCache] = None):
        self.store = store
        self.identity = identity
        self.cache = cache or SubscriptionCache(store)

    async def _read(self, doc_id: str, model: Type[ConfigT]) -> Optional[ConfigT]:
        record = await self.store.get(JOB_FINDER_CONFIG, doc_id)
        if record is None:
            return None
        return model.model_validate(record.model_dump())

    def _payload(self, doc_id: str, model: Type[ConfigT], data: ConfigUpdate) -> Dict[str, Any]:
        if isinstance(data, BaseModel):
            raw = data.model_dump(exclude_unset=True)
        else:
            raw = dict(data)
        raw = {key: value for key, value in raw.items() if key not in AUDIT_FIELDS}
        try:
            validated = model.model_validate(raw)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {doc_id} config: {e}") from e
        return {key: getattr(validated, key) for key in raw}

    async def _save(self, doc_id: str, model: Type[ConfigT], data: ConfigUpdate) -> ConfigT:
        """Update the document, creating it from the model defaults when missing."""
        updated_by = self.identity.audit_name()
        updates = self._payload(doc_id, model, data)
        updates["updatedBy"] = updated_by

        existing = await self.store.get(JOB_FINDER_CONFIG, doc_id)
        if existing is None:
            await self.store.upsert(JOB_FINDER_CONFIG, doc_id, {**defaults_for(model), **updates})
            logger.info(f"Created {doc_id} config (by {updated_by})")
        else:
            await self.store.update(JOB_FINDER_CONFIG, doc_id, updates)
            logger.info(f"Updated {doc_id} config: {', '.join(sorted(updates))}")
        return await self._read(doc_id, model)

    def _subscribe(
        self,
        doc_id: str,
        model: Type[ConfigT],
        on_data: Callable[[Optional[ConfigT]], None],
        on_error: Optional[Callable[[Exception], None]],
    ) -> Unsubscribe:
        def deliver(record: Optional[JobFinderConfigDoc]) -> None:
            on_data(model.model_validate(record.model_dump()) if record is not None else None)

        return self.cache.subscribe_to_document(JOB_FINDER_CONFIG, doc_id, deliver, on_error)

    # Stop list

    async def get_stop_list(self) -> Optional[StopList]:
        """The stop list, or None until one has been saved."""
        return await self._read(STOP_LIST_ID, StopList)

    async def update_stop_list(self, data: ConfigUpdate) -> StopList:
        """
        Replace the given stop-list fields. Entries are trimmed and
        de-duplicated, keeping their first position.

        Raises:
            ValidationError: If a list holds anything but non-empty strings
        """
        raw = data.model_dump(exclude_unset=True) if isinstance(data, BaseModel) else dict(data)
        for field in STOP_LIST_FIELDS:
            if field in raw:
                raw[field] = _dedupe_entries(field, raw[field])
        return await self._save(STOP_LIST_ID, StopList, raw)

    async def _add_excluded(self, field: str, value: str) -> StopList:
        entry = _dedupe_entries(field, [value])[0]
        stop_list = await self.get_stop_list()
        current = getattr(stop_list, field) if stop_list else []
        if stop_list is not None and entry in current:
            return stop_list
        return await self.update_stop_list({field: current + [entry]})

    async def _remove_excluded(self, field: str, value: str) -> Optional[StopList]:
        stop_list = await self.get_stop_list()
        if stop_list is None:
            return None
        current = getattr(stop_list, field)
        entry = _dedupe_entries(field, [value])[0]
        if entry not in current:
            return stop_list
        return await self.update_stop_list({field: [item for item in current if item != entry]})

    async def add_excluded_company(self, company_name: str) -> StopList:
        return await self._add_excluded("excludedCompanies", company_name)

    async def remove_excluded_company(self, company_name: str) -> Optional[StopList]:
        return await self._remove_excluded("excludedCompanies", company_name)

    async def add_excluded_keyword(self, keyword: str) -> StopList:
        return await self._add_excluded("excludedKeywords", keyword)

    async def remove_excluded_keyword(self, keyword: str) -> Optional[StopList]:
        return await self._remove_excluded("excludedKeywords", keyword)

    async def add_excluded_domain(self, domain: str) -> StopList:
        return await self._add_excluded("excludedDomains", domain)

    async def remove_excluded_domain(self, domain: str) -> Optional[StopList]:
        return await self._remove_excluded("excludedDomains", domain)

    def subscribe_to_stop_list(
        self,
        on_data: Callable[[Optional[StopList]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Unsubscribe:
        return self._subscribe(STOP_LIST_ID, StopList, on_data, on_error)

    # Queue and AI settings

    async def get_queue_settings(self) -> Optional[QueueSettings]:
        return await self._read(QUEUE_SETTINGS_ID, QueueSettings)

    async def update_queue_settings(self, data: ConfigUpdate) -> QueueSettings:
        return await self._save(QUEUE_SETTINGS_ID, QueueSettings, data)

    async def get_ai_settings(self) -> Optional[AISettings]:
        return await self._read(AI_SETTINGS_ID, AISettings)

    async def update_ai_settings(self, data: ConfigUpdate) -> AISettings:
        return await self._save(AI_SETTINGS_ID, AISettings, data)

    def subscribe_to_queue_settings(
        self,
        on_data: Callable[[Optional[QueueSettings]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Unsubscribe:
        return self._subscribe(QUEUE_SETTINGS_ID, QueueSettings, on_data, on_error)

    def subscribe_to_ai_settings(
        self,
        on_data: Callable[[Optional[AISettings]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Unsubscribe:
        return self._subscribe(AI_SETTINGS_ID, AISettings, on_data, on_error)

    # Prompts

    async def get_prompts(self) -> PromptConfig:
        """Saved prompt templates, or the built-in defaults when none are saved."""
        return await self._read(AI_PROMPTS_ID, PromptConfig) or PromptConfig()

    async def save_prompts(self, prompts: ConfigUpdate) -> PromptConfig:
        """Overwrite the whole prompt document; omitted templates fall back to defaults."""
        updated_by = self.identity.audit_name()
        raw = prompts.model_dump(exclude=AUDIT_FIELDS) if isinstance(prompts, BaseModel) else dict(prompts)
        try:
            validated = PromptConfig.model_validate({key: value for key, value in raw.items() if key not in AUDIT_FIELDS})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid prompts: {e}") from e

        payload = validated.model_dump(exclude=AUDIT_FIELDS, exclude_none=True)
        payload["updatedBy"] = updated_by
        await self.store.upsert(JOB_FINDER_CONFIG, AI_PROMPTS_ID, payload)
        logger.info(f"Saved AI prompts (by {updated_by})")
        return await self._read(AI_PROMPTS_ID, PromptConfig)

    async def reset_prompts(self) -> PromptConfig:
        return await self.save_prompts(PromptConfig())
