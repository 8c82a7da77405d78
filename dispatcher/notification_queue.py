"""
Queued notification trigger.

Fires on creation of ``notificationQueue/{queueId}``. Each record is sent once
and then marked ``processed``, whether or not the send succeeded, so a
redelivered creation event finds the record already done.
"""
import logging

from firebase_admin import firestore

from .constants import INVALID_QUEUE_RECORD_ERROR, NOTIFICATION_QUEUE_COLLECTION
from .firebase_service import DocumentStoreError
from .push_service import PushMessage, PushResult, deliver_push

logger = logging.getLogger("dispatcher")


def _mark_processed(store, path: str, error=None) -> None:
    """
    Write the terminal state of a queue record.

    Raises DocumentStoreError when the write fails: the record is still
    unprocessed and the event has to be redelivered.
    """
    fields = {
        "processed": True,
        "processedAt": firestore.SERVER_TIMESTAMP,
    }
    if error is not None:
        fields["error"] = error

    if not store.update_document(path, fields):
        logger.error(f"[QUEUE] Could not mark {path} processed")
        raise DocumentStoreError(f"Failed to mark {path} processed")


def _mark_failed(store, path: str):
    def _hook(result: PushResult) -> None:
        _mark_processed(store, path, error=result.error or result.error_code or "unknown_error")
    return _hook


async def handle_queued_notification(store, gateway, queue_id: str) -> str:
    path = f"{NOTIFICATION_QUEUE_COLLECTION}/{queue_id}"
    logger.info(f"[QUEUE] Processing notification queue item: {queue_id}")

    # Re-read so a redelivered event sees the state written by the first run
    record = store.get_document(path)
    if record is None:
        logger.warning(f"[QUEUE] Queue item not found: {queue_id}")
        return "not_found"

    if record.get("processed"):
        logger.info(f"[QUEUE] Notification {queue_id} already processed")
        return "already_processed"

    token = record.get("targetToken")
    title = record.get("title")
    body = record.get("body")
    if not token or not title or not body:
        logger.error(f"[QUEUE] Invalid notification data in {queue_id} - missing required fields")
        _mark_processed(store, path, error=INVALID_QUEUE_RECORD_ERROR)
        return "invalid"

    message = PushMessage(
        token=token,
        title=title,
        body=body,
        data=record.get("data") or {},
    )

    result = await deliver_push(gateway, message, on_failure=_mark_failed(store, path))
    if not result.success:
        return "send_failed"

    _mark_processed(store, path)
    logger.info(f"[QUEUE] Queued notification {queue_id} sent to {record.get('targetUserId') or 'unknown user'}")
    return "sent"
