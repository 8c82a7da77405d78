"""
Firebase service - Firestore access for the notification triggers.

Firestore Collections:
- partnerships/{partnershipId}: user1Id, user2Id
- partnerships/{partnershipId}/stories/{storyId}: text, authorId, authorName, items
- users/{uid}: Contains fcmToken for push notifications
- notificationQueue/{queueId}: targetToken, title, body, data, processed, error
- securityIncidents/{incidentId}: audit records for rejected story updates
"""
import json
import logging
import os
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore

logger = logging.getLogger("dispatcher")

_firebase_app = None
_firestore_client = None
_firebase_init_attempted = False


class DocumentStoreError(Exception):
    """Firestore could not answer; unlike a missing document, worth redelivering."""


def _emulator_enabled() -> bool:
    return os.environ.get("FIREBASE_USE_EMULATOR", "false").lower() == "true"


def _load_credentials(project_id: Optional[str]):
    """
    Pick credentials in order: inline service account JSON, service account
    file, then Application Default Credentials when a project is configured.
    """
    service_account_json = os.environ.get("FIREBASE_SERVICE_ACCOUNT")
    service_account_path = os.environ.get("FIREBASE_SERVICE_ACCOUNT_PATH")

    if service_account_json:
        try:
            return credentials.Certificate(json.loads(service_account_json))
        except ValueError as e:
            logger.error(f"[FIREBASE] Invalid FIREBASE_SERVICE_ACCOUNT JSON: {e}")
            return None
    if service_account_path and os.path.exists(service_account_path):
        logger.info(f"[FIREBASE] Using service account from {service_account_path}")
        return credentials.Certificate(service_account_path)
    if project_id:
        logger.info("[FIREBASE] Using application default credentials")
        return credentials.ApplicationDefault()
    return None


def _initialize(cred, options):
    try:
        return firebase_admin.initialize_app(cred, options=options)
    except ValueError:
        # Default app already exists in this process
        try:
            return firebase_admin.get_app()
        except ValueError as e:
            logger.error(f"[FIREBASE] init failed: {e}")
            return None


def get_firebase_app():
    """Get or initialize the Firebase Admin app; initialization is tried once."""
    global _firebase_app, _firebase_init_attempted

    if _firebase_app is not None or _firebase_init_attempted:
        return _firebase_app
    _firebase_init_attempted = True

    project_id = os.environ.get("FIREBASE_PROJECT_ID")

    if _emulator_enabled():
        os.environ.setdefault("FIRESTORE_EMULATOR_HOST", "localhost:8080")
        _firebase_app = _initialize(None, {"projectId": project_id or "demo-project"})
        logger.info(f"[FIREBASE] Emulator mode (Firestore: {os.environ['FIRESTORE_EMULATOR_HOST']})")
        return _firebase_app

    cred = _load_credentials(project_id)
    if cred is None:
        logger.warning("[FIREBASE] Credentials not found - Firestore operations will fail")
        return None

    _firebase_app = _initialize(cred, {"projectId": project_id} if project_id else None)
    if _firebase_app is not None:
        logger.info(f"[FIREBASE] Admin initialized for project {project_id or '(from credentials)'}")
    return _firebase_app


def get_firestore():
    global _firestore_client

    if _firestore_client is None:
        app = get_firebase_app()
        if app is None:
            return None
        try:
            _firestore_client = firestore.client(app)
        except Exception as e:
            logger.error(f"[FIREBASE] Failed to get Firestore client: {e}")
            return None
    return _firestore_client


class FirestoreDocumentStore:
    """
    Document access used by the trigger handlers.

    Handlers receive a store instance instead of reaching for the Firestore
    client, so tests can pass an in-memory store with the same methods.
    Paths are slash-separated document paths such as ``users/{uid}``.
    """

    def __init__(self, client_provider=get_firestore):
        self._client_provider = client_provider
        self._db = None

    @property
    def db(self):
        if self._db is None:
            self._db = self._client_provider()
        return self._db

    def is_available(self) -> bool:
        return self.db is not None

    def get_document(self, path: str) -> Optional[Dict[str, Any]]:
        """
        Return the document fields, or None if the document does not exist.

        Raises:
            DocumentStoreError: Firestore is not configured or the read failed.
        """
        if not self.db:
            raise DocumentStoreError("Firestore not available")

        try:
            doc = self.db.document(path).get()
        except Exception as e:
            logger.error(f"[FIREBASE] Error reading {path}: {e}")
            raise DocumentStoreError(f"Error reading {path}: {e}") from e

        if not doc.exists:
            logger.info(f"[FIREBASE] Document not found: {path}")
            return None
        return doc.to_dict() or {}

    def update_document(self, path: str, fields: Dict[str, Any]) -> bool:
        """
        Update fields on an existing document; False if the write failed.

        Values may be ``firestore.DELETE_FIELD`` or ``firestore.SERVER_TIMESTAMP``.
        """
        if not self.db:
            logger.warning("[FIREBASE] Firestore not available")
            return False

        try:
            self.db.document(path).update(fields)
            return True
        except Exception as e:
            logger.error(f"[FIREBASE] Error updating {path}: {e}")
            return False

    def add_document(self, collection: str, data: Dict[str, Any]) -> Optional[str]:
        """Create a document with a generated id and return that id."""
        if not self.db:
            logger.warning("[FIREBASE] Firestore not available")
            return None

        try:
            _, doc_ref = self.db.collection(collection).add(data)
            return doc_ref.id
        except Exception as e:
            logger.error(f"[FIREBASE] Error adding document to {collection}: {e}")
            return None


# Singleton instance
firestore_store = FirestoreDocumentStore()
