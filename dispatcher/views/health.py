import os

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..firebase_service import firestore_store
from ..push_service import push_service


@csrf_exempt
def health(request):
    """Liveness plus whether the Firestore store and FCM gateway can be used."""
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    store_ready = firestore_store.is_available()
    fcm_ready = push_service.is_configured()

    return JsonResponse({
        "status": "ok" if store_ready and fcm_ready else "degraded",
        "firestore": "connected" if store_ready else "not_configured",
        "fcm": "configured" if fcm_ready else "not_configured",
        "emulator": os.environ.get("FIRESTORE_EMULATOR_HOST") or None,
    })
