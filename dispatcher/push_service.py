"""
Push notification delivery through Firebase Cloud Messaging (Firebase Admin SDK).

iOS devices are reached through FCM as well; the APNs alert is carried in the
message's ``apns`` payload.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from firebase_admin import messaging

from .constants import DEFAULT_BADGE, DEFAULT_SOUND
from .firebase_service import get_firebase_app

logger = logging.getLogger("dispatcher")

UNREGISTERED = "UNREGISTERED"


def _data_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str, ensure_ascii=False)
    return str(value)


@dataclass
class PushResult:
    """Result of a push notification attempt"""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def token_unregistered(self) -> bool:
        """The device token is permanently invalid and should be forgotten."""
        return self.error_code == UNREGISTERED


@dataclass
class PushMessage:
    """A single alert push addressed to one device token."""
    token: str
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)
    sound: str = DEFAULT_SOUND
    badge: int = DEFAULT_BADGE

    def string_data(self) -> Dict[str, str]:
        # FCM data values must be strings; nested values travel as JSON
        return {str(k): _data_string(v) for k, v in self.data.items()}

    def to_fcm_message(self) -> messaging.Message:
        return messaging.Message(
            token=self.token,
            notification=messaging.Notification(title=self.title, body=self.body),
            data=self.string_data(),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(
                        alert=messaging.ApsAlert(title=self.title, body=self.body),
                        sound=self.sound,
                        badge=self.badge,
                    )
                )
            ),
        )


class FCMService:
    """
    Firebase Cloud Messaging service.
    Uses Firebase Admin SDK for sending messages.
    """

    def __init__(self, app_provider=get_firebase_app):
        self._app_provider = app_provider

    def _get_app(self):
        app = self._app_provider()
        if app is None:
            logger.warning("[FCM] Firebase app not initialized")
        return app

    def is_configured(self) -> bool:
        """Check if FCM is properly configured"""
        return self._get_app() is not None

    async def send(self, message: PushMessage) -> PushResult:
        """
        Send an alert push to a single device.

        Failures are reported through the returned PushResult, never raised.
        """
        app = self._get_app()
        if app is None:
            return PushResult(
                success=False,
                error="FCM not configured",
                error_code="not_configured",
            )

        try:
            response = messaging.send(message.to_fcm_message(), app=app)
            logger.info(f"[FCM] Message sent successfully: {response}")
            return PushResult(success=True, message_id=response)

        except messaging.UnregisteredError as e:
            logger.warning(f"[FCM] Token unregistered: {message.token[:20]}...")
            return PushResult(
                success=False,
                error=str(e) or "Token unregistered",
                error_code=UNREGISTERED,
            )
        except messaging.SenderIdMismatchError as e:
            logger.error("[FCM] Sender ID mismatch")
            return PushResult(
                success=False,
                error=str(e) or "Sender ID mismatch",
                error_code="SENDER_ID_MISMATCH",
            )
        except Exception as e:
            logger.error(f"[FCM] Send error: {e}")
            return PushResult(
                success=False,
                error=str(e),
                error_code="exception",
            )


async def deliver_push(
    gateway,
    message: PushMessage,
    on_failure: Optional[Callable[[PushResult], None]] = None,
) -> PushResult:
    """
    Send ``message`` through ``gateway`` and run ``on_failure`` if it fails.

    Both trigger handlers go through here; they differ only in what the
    failure hook records. Nothing is retried.
    """
    result = await gateway.send(message)

    if result.success:
        logger.info(f"[PUSH] Delivered to {message.token[:20]}... ({result.message_id})")
        return result

    logger.error(f"[PUSH] Delivery failed: code={result.error_code}, error={result.error}")
    if on_failure is not None:
        on_failure(result)
    return result


# Singleton instance
push_service = FCMService()
