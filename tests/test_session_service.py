"""Tests for the MongoDB wizard session store."""

from datetime import timedelta

import pytest

from app.core.exceptions import ResourceNotFoundError, SaveInProgressError
from app.flow.steps import WizardStep
from app.flow.wizard import WizardController
from app.models.reference import ByName
from app.services.session_service import WizardSessionStore
from utils.time_utils import utc_now


@pytest.fixture
def store(collection):
    return WizardSessionStore(collection, timeout_minutes=30)


class TestWizardSessionStore:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_expiry(self, store, collection):
        wizard = await store.create(WizardController(), operator_id="u-operator")

        doc = collection.docs[0]
        assert doc["session_id"] == wizard.session_id
        assert doc["operator_id"] == "u-operator"
        assert doc["saving"] is False
        assert doc["expires_at"] - doc["last_interaction"] == timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_save_and_load_preserve_draft(self, store, complete_draft):
        wizard = await store.create(WizardController(draft=complete_draft), operator_id=None)
        wizard.draft.role_ref = ByName("Driver")
        wizard.step = WizardStep.ADDRESS
        await store.save(wizard)

        loaded = await store.load(wizard.session_id)

        assert loaded.step == WizardStep.ADDRESS
        assert loaded.draft.role_ref == ByName("Driver")

    @pytest.mark.asyncio
    async def test_expired_session_reads_as_not_found(self, store, collection):
        wizard = await store.create(WizardController(), operator_id=None)
        collection.docs[0]["expires_at"] = utc_now() - timedelta(seconds=1)

        with pytest.raises(ResourceNotFoundError, match="expired"):
            await store.load(wizard.session_id)

    @pytest.mark.asyncio
    async def test_naive_expiry_from_mongo_is_utc(self, store, collection):
        wizard = await store.create(WizardController(), operator_id=None)
        collection.docs[0]["expires_at"] = (utc_now() + timedelta(minutes=5)).replace(tzinfo=None)
        assert (await store.load(wizard.session_id)).session_id == wizard.session_id

    @pytest.mark.asyncio
    async def test_unknown_session(self, store):
        with pytest.raises(ResourceNotFoundError):
            await store.load("nope")

    @pytest.mark.asyncio
    async def test_save_claim_is_exclusive(self, store):
        wizard = await store.create(WizardController(), operator_id=None)

        await store.begin_save(wizard.session_id)
        with pytest.raises(SaveInProgressError):
            await store.begin_save(wizard.session_id)

        await store.end_save(wizard.session_id)
        await store.begin_save(wizard.session_id)

    @pytest.mark.asyncio
    async def test_no_credential_fields_stored(self, store, collection, complete_draft):
        complete_draft.password_enabled = True
        await store.create(WizardController(draft=complete_draft), operator_id=None)
        stored = repr(collection.docs[0]).lower()
        assert "temporary" not in stored
        assert "secret" not in stored

    @pytest.mark.asyncio
    async def test_delete(self, store):
        wizard = await store.create(WizardController(), operator_id=None)
        assert await store.delete(wizard.session_id)
        assert not await store.delete(wizard.session_id)

    @pytest.mark.asyncio
    async def test_abandoned_claim_can_be_taken_over(self, collection):
        store = WizardSessionStore(collection, timeout_minutes=30, claim_timeout_seconds=60)
        wizard = await store.create(WizardController(), operator_id=None)
        await store.begin_save(wizard.session_id)

        # the process holding the claim died before end_save
        collection.docs[0]["save_claimed_at"] = utc_now() - timedelta(minutes=5)

        assert (await store.load(wizard.session_id)).saving is False
        await store.begin_save(wizard.session_id)
        assert collection.docs[0]["save_claimed_at"] > utc_now() - timedelta(seconds=5)

    @pytest.mark.asyncio
    async def test_live_claim_reads_as_saving(self, store):
        wizard = await store.create(WizardController(), operator_id=None)
        await store.begin_save(wizard.session_id)

        assert (await store.load(wizard.session_id)).saving is True

        await store.end_save(wizard.session_id)
        assert (await store.load(wizard.session_id)).saving is False
