"""
Send push notifications via Firebase Cloud Messaging (FCM).

Each user has a topic, user_<id>; devices subscribe to it through
POST /notifications/devices and the expiry sweep publishes to it.
Requires FIREBASE_PROJECT_ID, FIREBASE_PRIVATE_KEY and FIREBASE_CLIENT_EMAIL.
If any is missing, build_push_notifier returns a NullPushNotifier whose calls
log and return None.
"""
from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials, messaging

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "shelfguard"
TOKEN_URI = "https://oauth2.googleapis.com/token"


def user_topic(user_id: int) -> str:
    return f"user_{user_id}"


class PushNotifier:
    """Delivery interface used by the sweep and the device routes."""

    def send(self, user_id: int, title: str, body: str, data: dict | None = None) -> str | None:
        raise NotImplementedError

    def subscribe(self, token: str, user_id: int):
        raise NotImplementedError

    def unsubscribe(self, token: str, user_id: int):
        raise NotImplementedError


class FirebasePushNotifier(PushNotifier):
    """
    Topic-based FCM delivery through a dedicated firebase_admin App.

    Provider errors propagate to the caller; the sweep logs and skips them
    per user.
    """

    def __init__(self, project_id: str, private_key: str, client_email: str, app_name: str = FIREBASE_APP_NAME):
        try:
            self.app = firebase_admin.get_app(app_name)
        except ValueError:
            cert = credentials.Certificate({
                "type": "service_account",
                "project_id": project_id,
                # Env files usually carry the PEM with literal \n sequences
                "private_key": private_key.replace("\\n", "\n"),
                "client_email": client_email,
                "token_uri": TOKEN_URI,
            })
            self.app = firebase_admin.initialize_app(cert, {"projectId": project_id}, name=app_name)
            logger.info("Firebase Admin SDK initialized for project %s", project_id)

    def send(self, user_id: int, title: str, body: str, data: dict | None = None) -> str | None:
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            # FCM data payload values must be strings
            data={str(k): str(v) for k, v in (data or {}).items()},
            topic=user_topic(user_id),
        )
        message_id = messaging.send(message, app=self.app)
        logger.info("Push sent to %s: %s", user_topic(user_id), message_id)
        return message_id

    def subscribe(self, token: str, user_id: int):
        response = messaging.subscribe_to_topic([token], user_topic(user_id), app=self.app)
        logger.info("Token subscribed to topic %s", user_topic(user_id))
        return response

    def unsubscribe(self, token: str, user_id: int):
        response = messaging.unsubscribe_from_topic([token], user_topic(user_id), app=self.app)
        logger.info("Token unsubscribed from topic %s", user_topic(user_id))
        return response


class NullPushNotifier(PushNotifier):
    """No-op notifier used when Firebase credentials are not configured."""

    def __init__(self):
        logger.warning("Firebase credentials not configured. Push notifications will not be sent.")

    def send(self, user_id: int, title: str, body: str, data: dict | None = None) -> str | None:
        logger.debug("Push skipped for %s (no provider configured)", user_topic(user_id))
        return None

    def subscribe(self, token: str, user_id: int):
        logger.debug("Subscribe skipped for %s (no provider configured)", user_topic(user_id))
        return None

    def unsubscribe(self, token: str, user_id: int):
        logger.debug("Unsubscribe skipped for %s (no provider configured)", user_topic(user_id))
        return None


def build_push_notifier(config) -> PushNotifier:
    project_id = config.get("FIREBASE_PROJECT_ID")
    private_key = config.get("FIREBASE_PRIVATE_KEY")
    client_email = config.get("FIREBASE_CLIENT_EMAIL")
    if not (project_id and private_key and client_email):
        return NullPushNotifier()
    return FirebasePushNotifier(project_id, private_key, client_email)
