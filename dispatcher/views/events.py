import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..constants import QUEUE_DOCUMENT_PATTERN, STORY_DOCUMENT_PATTERN
from ..events import EventDecodeError, decode_document, event_document_path, match_document_path
from ..firebase_service import DocumentStoreError, firestore_store
from ..http import json_body
from ..notification_queue import handle_queued_notification
from ..push_service import push_service
from ..story_notifications import handle_story_update
from ..utils import run_async

logger = logging.getLogger("dispatcher")


def _unexpected_document(path):
    return JsonResponse({"error": "unexpected_document", "document": path}, status=400)


def _firestore_unavailable(tag, exc):
    # Non-2xx so the trigger infrastructure redelivers the event
    logger.error(f"[EVENT/{tag}] Firestore unavailable: {exc}")
    return JsonResponse({
        "error": "firestore_unavailable",
        "message": str(exc),
    }, status=503)


@csrf_exempt
def story_updated(request):
    """
    Update trigger for partnerships/{partnershipId}/stories/{storyId}.
    """
    logger.info(f"[EVENT/STORY] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        logger.error("[EVENT/STORY] Invalid JSON body")
        return error

    path = event_document_path(data)
    params = match_document_path(path, STORY_DOCUMENT_PATTERN)
    if params is None:
        logger.error(f"[EVENT/STORY] Unexpected document: {path}")
        return _unexpected_document(path)

    try:
        before = decode_document(data.get("oldValue"))
        after = decode_document(data.get("value"))
    except EventDecodeError as exc:
        logger.error(f"[EVENT/STORY] Undecodable snapshot for {path}: {exc}")
        return JsonResponse({"error": f"invalid_event: {exc}"}, status=400)

    try:
        outcome = run_async(handle_story_update(
            firestore_store,
            push_service,
            partnership_id=params["partnershipId"],
            story_id=params["storyId"],
            before=before,
            after=after,
        ))
    except DocumentStoreError as exc:
        return _firestore_unavailable("STORY", exc)

    return JsonResponse({
        "status": outcome,
        "partnershipId": params["partnershipId"],
        "storyId": params["storyId"],
    })


@csrf_exempt
def notification_queued(request):
    """
    Create trigger for notificationQueue/{queueId}.
    """
    logger.info(f"[EVENT/QUEUE] {request.method} from {request.META.get('REMOTE_ADDR')}")

    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        logger.error("[EVENT/QUEUE] Invalid JSON body")
        return error

    path = event_document_path(data)
    params = match_document_path(path, QUEUE_DOCUMENT_PATTERN)
    if params is None:
        logger.error(f"[EVENT/QUEUE] Unexpected document: {path}")
        return _unexpected_document(path)

    # The handler re-reads the record, the event snapshot is only used for routing
    try:
        outcome = run_async(handle_queued_notification(
            firestore_store,
            push_service,
            queue_id=params["queueId"],
        ))
    except DocumentStoreError as exc:
        return _firestore_unavailable("QUEUE", exc)

    return JsonResponse({
        "status": outcome,
        "queueId": params["queueId"],
    })
