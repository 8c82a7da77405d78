import json
from typing import Optional, Tuple

from django.http import JsonResponse


def json_body(request) -> Tuple[Optional[dict], Optional[JsonResponse]]:
    """
    Parse a pushed document event. Returns ``(event, None)`` or ``(None, error_response)``.

    An empty body is rejected: every trigger delivery carries at least the
    document snapshot.
    """
    if not request.body:
        return None, JsonResponse({"error": "empty_event"}, status=400)

    try:
        data = json.loads(request.body.decode("utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        return None, JsonResponse({"error": f"invalid_json: {exc}"}, status=400)

    if not isinstance(data, dict):
        return None, JsonResponse({"error": "invalid_json: event must be an object"}, status=400)
    return data, None
