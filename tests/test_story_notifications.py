"""
Story completion trigger.

Tests that:
1. Completing a story sends exactly one push to the partner's token
2. Edits and no-op updates never send
3. Lookup misses and missing tokens stop the pipeline without writes
4. An unregistered token is deleted from the partner's user document
5. An author outside the partnership is recorded as a security incident
6. Firestore read failures raise instead of looking like missing documents

Run with: pytest tests/test_story_notifications.py -v
"""

import pytest

from dispatcher.firebase_service import DocumentStoreError
from dispatcher.push_service import UNREGISTERED, PushResult
from dispatcher.story_notifications import (
    build_story_message,
    build_story_prompt,
    handle_story_update,
)
from tests.fakes import InMemoryDocumentStore, RecordingPushGateway


def _story(text, author_id="alice", author_name="alice", items=None):
    return {
        "text": text,
        "authorId": author_id,
        "authorName": author_name,
        "items": items if items is not None else {"who": "Mickey", "where": "Tomorrowland"},
    }


async def _complete(store, gateway, before_text="", after=None):
    return await handle_story_update(
        store,
        gateway,
        partnership_id="p1",
        story_id="2024-05-01",
        before=_story(before_text),
        after=after or _story("We rode Space Mountain!"),
    )


class TestBuildStoryPrompt:

    def test_joins_items_in_order(self):
        items = {"who": "Mickey", "what": "parade", "where": "Main Street"}
        assert build_story_prompt(items) == "who: Mickey, what: parade, where: Main Street"

    def test_missing_items(self):
        assert build_story_prompt(None) == ""


class TestBuildStoryMessage:

    def test_title_body_and_data(self):
        message = build_story_message(
            token="tok123",
            author_id="alice",
            author_name="Alice",
            prompt="who: Mickey",
            partnership_id="p1",
            story_id="s1",
        )
        assert message.title == "New Disney Story! ✨"
        assert message.body == "Alice just wrote a magical Disney Daydream! Check it out!"
        assert message.data == {
            "type": "story_completed",
            "authorId": "alice",
            "authorName": "Alice",
            "prompt": "who: Mickey",
            "partnershipId": "p1",
            "storyId": "s1",
        }


class TestHandleStoryUpdate:

    @pytest.mark.asyncio
    async def test_completion_notifies_partner(self, store, gateway):
        outcome = await _complete(store, gateway)

        assert outcome == "sent"
        assert len(gateway.sent) == 1
        message = gateway.sent[0]
        assert message.token == "tok123"
        assert "alice" in message.body
        assert message.data["prompt"] == "who: Mickey, where: Tomorrowland"
        assert message.data["partnershipId"] == "p1"
        assert message.data["storyId"] == "2024-05-01"

    @pytest.mark.asyncio
    async def test_second_partner_notifies_first(self, store, gateway):
        after = _story("Churros!", author_id="bob", author_name="Bob")
        outcome = await _complete(store, gateway, after=after)

        assert outcome == "sent"
        assert gateway.sent[0].token == "tokAlice"

    @pytest.mark.asyncio
    async def test_missing_author_name_uses_default(self, store, gateway):
        after = _story("Churros!", author_name=None)
        await _complete(store, gateway, after=after)

        assert gateway.sent[0].body.startswith("Your partner just wrote")
        assert gateway.sent[0].data["authorName"] == "Your partner"

    @pytest.mark.asyncio
    async def test_edit_does_not_notify(self, store, gateway):
        outcome = await handle_story_update(
            store, gateway, "p1", "s1",
            before=_story("hello"),
            after=_story("hello world"),
        )

        assert outcome == "edited"
        assert gateway.sent == []

    @pytest.mark.asyncio
    async def test_unchanged_text_does_not_notify(self, store, gateway):
        outcome = await handle_story_update(
            store, gateway, "p1", "s1",
            before=_story(""),
            after=_story("  "),
        )

        assert outcome == "noop"
        assert gateway.sent == []

    @pytest.mark.asyncio
    async def test_missing_partnership(self, store, gateway):
        del store.documents["partnerships/p1"]

        outcome = await _complete(store, gateway)

        assert outcome == "partnership_not_found"
        assert gateway.sent == []

    @pytest.mark.asyncio
    async def test_author_outside_partnership_records_incident(self, store, gateway):
        after = _story("Sneaky", author_id="mallory")

        outcome = await _complete(store, gateway, after=after)

        assert outcome == "author_not_member"
        assert gateway.sent == []
        incidents = list(store.collection("securityIncidents").values())
        assert len(incidents) == 1
        incident = incidents[0]
        assert incident["type"] == "unauthorized_story_update"
        assert incident["authorId"] == "mallory"
        assert incident["partnershipId"] == "p1"
        assert incident["storyId"] == "2024-05-01"
        assert incident["partnership"] == {"user1Id": "alice", "user2Id": "bob"}

    @pytest.mark.asyncio
    async def test_missing_recipient(self, store, gateway):
        del store.documents["users/bob"]

        outcome = await _complete(store, gateway)

        assert outcome == "recipient_not_found"
        assert gateway.sent == []

    @pytest.mark.asyncio
    async def test_missing_token(self, store, gateway):
        store.documents["users/bob"]["fcmToken"] = None
        before = dict(store.documents["users/bob"])

        outcome = await _complete(store, gateway)

        assert outcome == "missing_token"
        assert gateway.sent == []
        assert store.documents["users/bob"] == before

    @pytest.mark.asyncio
    async def test_unregistered_token_is_removed(self, store):
        gateway = RecordingPushGateway(
            result=PushResult(success=False, error="not registered", error_code=UNREGISTERED)
        )

        outcome = await _complete(store, gateway)

        assert outcome == "send_failed"
        assert "fcmToken" not in store.documents["users/bob"]
        assert store.documents["users/bob"]["email"] == "bob@example.com"

    @pytest.mark.asyncio
    async def test_other_failures_keep_token(self, store):
        gateway = RecordingPushGateway(
            result=PushResult(success=False, error="unavailable", error_code="exception")
        )

        outcome = await _complete(store, gateway)

        assert outcome == "send_failed"
        assert store.documents["users/bob"]["fcmToken"] == "tok123"
        assert len(gateway.sent) == 1

    @pytest.mark.asyncio
    async def test_read_failure_is_not_a_lookup_miss(self, store, gateway):
        store.fail_reads = True

        with pytest.raises(DocumentStoreError):
            await _complete(store, gateway)

        assert gateway.sent == []

    @pytest.mark.asyncio
    async def test_failed_token_cleanup_does_not_raise(self, store):
        store.fail_writes = True
        gateway = RecordingPushGateway(
            result=PushResult(success=False, error="not registered", error_code=UNREGISTERED)
        )

        outcome = await _complete(store, gateway)

        assert outcome == "send_failed"
        assert store.documents["users/bob"]["fcmToken"] == "tok123"

    @pytest.mark.asyncio
    async def test_edit_needs_no_store(self, gateway):
        outcome = await handle_story_update(
            InMemoryDocumentStore(fail_reads=True), gateway, "p1", "s1",
            before=_story("hello"),
            after=_story("hello world"),
        )

        assert outcome == "edited"
