"""
Story completion trigger.

Fires on updates to ``partnerships/{partnershipId}/stories/{storyId}``. When a
story's text goes from empty to non-empty, the author's partner gets a push.
Edits of an already written story never notify.
"""
import logging
from typing import Any, Dict, Optional

from firebase_admin import firestore

from .completion import StoryChange, classify_story_change
from .constants import (
    DEFAULT_AUTHOR_NAME,
    PARTNERSHIPS_COLLECTION,
    SECURITY_INCIDENTS_COLLECTION,
    STORY_COMPLETED_TYPE,
    STORY_NOTIFICATION_BODY,
    STORY_NOTIFICATION_TITLE,
    UNAUTHORIZED_STORY_UPDATE,
    USERS_COLLECTION,
)
from .partners import resolve_partner
from .push_service import PushMessage, PushResult, deliver_push

logger = logging.getLogger("dispatcher")


def build_story_prompt(items: Optional[Dict[str, Any]]) -> str:
    """Join the story's prompt answers as ``key: value`` pairs."""
    return ", ".join(f"{key}: {value}" for key, value in (items or {}).items())


def build_story_message(
    *,
    token: str,
    author_id: str,
    author_name: str,
    prompt: str,
    partnership_id: str,
    story_id: str,
) -> PushMessage:
    return PushMessage(
        token=token,
        title=STORY_NOTIFICATION_TITLE,
        body=STORY_NOTIFICATION_BODY.format(author_name=author_name),
        data={
            "type": STORY_COMPLETED_TYPE,
            "authorId": author_id,
            "authorName": author_name,
            "prompt": prompt,
            "partnershipId": partnership_id,
            "storyId": story_id,
        },
    )


def _clear_invalid_token(store, user_id: str):
    def _hook(result: PushResult) -> None:
        if not result.token_unregistered:
            return
        logger.warning(f"[STORY] Removing invalid token for partner: {user_id}")
        cleared = store.update_document(
            f"{USERS_COLLECTION}/{user_id}",
            {"fcmToken": firestore.DELETE_FIELD},
        )
        if not cleared:
            logger.error(f"[STORY] Could not remove invalid token for partner: {user_id}")
    return _hook


def _record_security_incident(store, author_id, partnership_id, story_id, partnership):
    store.add_document(SECURITY_INCIDENTS_COLLECTION, {
        "type": UNAUTHORIZED_STORY_UPDATE,
        "timestamp": firestore.SERVER_TIMESTAMP,
        "authorId": author_id,
        "partnershipId": partnership_id,
        "storyId": story_id,
        "partnership": {
            "user1Id": partnership.get("user1Id"),
            "user2Id": partnership.get("user2Id"),
        },
    })


async def handle_story_update(
    store,
    gateway,
    partnership_id: str,
    story_id: str,
    before: Dict[str, Any],
    after: Dict[str, Any],
) -> str:
    """
    Notify the partner when a story is completed.

    Returns a short outcome string; every outcome is terminal for this event.
    """
    change = classify_story_change(before.get("text"), after.get("text"))

    if change is StoryChange.EDITED:
        logger.info(f"[STORY] Story {story_id} edited (no notification for edits)")
        return "edited"
    if change is StoryChange.NOOP:
        logger.info(f"[STORY] Story {story_id} updated but no text completion detected")
        return "noop"

    author_id = after.get("authorId")
    author_name = after.get("authorName") or DEFAULT_AUTHOR_NAME

    logger.info(
        f"[STORY] Completion detected - author={author_name} ({author_id}), "
        f"partnership={partnership_id}, story={story_id}"
    )

    partnership = store.get_document(f"{PARTNERSHIPS_COLLECTION}/{partnership_id}")
    if partnership is None:
        logger.error(f"[STORY] Partnership not found: {partnership_id}")
        return "partnership_not_found"

    partner_id = resolve_partner(partnership, author_id)
    if partner_id is None:
        logger.error(
            f"[STORY] Unauthorized story update by {author_id} in partnership {partnership_id} "
            f"(members: {partnership.get('user1Id')}, {partnership.get('user2Id')})"
        )
        _record_security_incident(store, author_id, partnership_id, story_id, partnership)
        return "author_not_member"

    recipient = store.get_document(f"{USERS_COLLECTION}/{partner_id}")
    if recipient is None:
        logger.warning(f"[STORY] User document not found for partner {partner_id}")
        return "recipient_not_found"

    fcm_token = recipient.get("fcmToken")
    if not fcm_token:
        logger.info(f"[STORY] No FCM token for partner {partner_id}")
        return "missing_token"

    message = build_story_message(
        token=fcm_token,
        author_id=author_id,
        author_name=author_name,
        prompt=build_story_prompt(after.get("items")),
        partnership_id=partnership_id,
        story_id=story_id,
    )

    result = await deliver_push(gateway, message, on_failure=_clear_invalid_token(store, partner_id))
    if not result.success:
        return "send_failed"

    logger.info(f"[STORY] Completion notification sent to partner {partner_id}")
    return "sent"
