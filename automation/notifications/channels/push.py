"""Firebase Cloud Messaging push delivery channel."""

import asyncio
import json
import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass, field

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

from automation.constants import PUSH_BATCH_SIZE
from automation.database import get_connection, get_transaction
from automation.queries.device_tokens import delete_device_token, get_tokens_for_users

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "meetup-automation"

# Failures after which a token will never be deliverable again
TERMINAL_ERRORS = (
    messaging.UnregisteredError,
    messaging.SenderIdMismatchError,
    firebase_exceptions.InvalidArgumentError,
)
TERMINAL_ERROR_CODES = frozenset(
    {
        "invalid-registration-token",
        "registration-token-not-registered",
        "invalid-argument",
    }
)

_app: firebase_admin.App | None = None
_initialized = False


@dataclass
class MulticastReport:
    """Aggregated outcome of sending one message to a list of tokens."""

    success_count: int = 0
    failure_count: int = 0
    tokens_to_delete: list[str] = field(default_factory=list)
    reason: str | None = None  # set when nothing could be sent at all


def _load_credential() -> credentials.Certificate | None:
    """
    Build Firebase credentials from the environment.

    Supports, in order:
    - FIREBASE_SERVICE_ACCOUNT: service account JSON as a string (for Railway/Heroku)
    - FIREBASE_PROJECT_ID / FIREBASE_CLIENT_EMAIL / FIREBASE_PRIVATE_KEY
    - GOOGLE_APPLICATION_CREDENTIALS: path to a service account file

    Returns None if not configured.
    """
    service_account_json = os.environ.get("FIREBASE_SERVICE_ACCOUNT")
    if service_account_json:
        return credentials.Certificate(json.loads(service_account_json))

    project_id = os.environ.get("FIREBASE_PROJECT_ID")
    client_email = os.environ.get("FIREBASE_CLIENT_EMAIL")
    private_key = os.environ.get("FIREBASE_PRIVATE_KEY")
    if project_id and client_email and private_key:
        return credentials.Certificate(
            {
                "type": "service_account",
                "project_id": project_id,
                "client_email": client_email,
                # Env files often carry the key with literal "\n" sequences
                "private_key": private_key.replace("\\n", "\n"),
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        )

    credentials_file = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if credentials_file and os.path.exists(credentials_file):
        return credentials.Certificate(credentials_file)

    return None


def _get_app() -> firebase_admin.App | None:
    """
    Get or create the Firebase app used for messaging.

    Initialization is attempted once per process; a missing or broken
    configuration leaves push disabled instead of raising.
    """
    global _app, _initialized
    if _initialized:
        return _app
    _initialized = True

    try:
        credential = _load_credential()
    except (ValueError, OSError) as e:
        logger.error(f"Firebase credentials are invalid, push disabled: {e}")
        return None

    if credential is None:
        logger.warning(
            "Firebase not configured (FIREBASE_SERVICE_ACCOUNT not set), "
            "push notifications disabled"
        )
        return None

    try:
        _app = firebase_admin.initialize_app(credential, name=FIREBASE_APP_NAME)
    except ValueError:
        # Already initialized under this name (e.g. module reloaded)
        _app = firebase_admin.get_app(FIREBASE_APP_NAME)
    except Exception as e:
        logger.error(f"Firebase initialization failed, push disabled: {e}")
        return None

    logger.info("Firebase messaging initialized")
    return _app


def is_terminal_failure(error: Exception | None) -> bool:
    """
    Whether a per-token failure means the token should be deleted.

    Invalid, unregistered and malformed tokens are terminal; anything else
    (quota, unavailable, internal) is transient and only logged.
    """
    if error is None:
        return False
    if isinstance(error, TERMINAL_ERRORS):
        return True
    code = str(getattr(error, "code", "") or "").lower().replace("_", "-")
    return code.removeprefix("messaging/") in TERMINAL_ERROR_CODES


def _stringify_data(data: dict | None) -> dict[str, str]:
    """FCM data payload values must all be strings."""
    return {str(key): str(value) for key, value in (data or {}).items()}


def _batches(tokens: list[str], size: int) -> Iterator[list[str]]:
    for start in range(0, len(tokens), size):
        yield tokens[start : start + size]


async def send_to_tokens(
    tokens: list[str],
    title: str,
    body: str,
    data: dict | None = None,
    batch_size: int = PUSH_BATCH_SIZE,
) -> MulticastReport:
    """
    Send one notification to a list of device tokens.

    Tokens are sent in batches of at most ``batch_size`` (one provider call
    per batch) and the per-batch counts are summed. A batch whose call fails
    outright counts every token in it as failed.

    Args:
        tokens: FCM registration tokens
        title: Notification title
        body: Notification body
        data: Extra payload (values are stringified)
        batch_size: Maximum tokens per provider call

    Returns:
        MulticastReport with counts and the tokens that must be deleted
    """
    app = _get_app()
    if app is None:
        return MulticastReport(reason="not_configured")

    report = MulticastReport()
    if not tokens:
        return report

    payload = _stringify_data(data)

    for batch in _batches(tokens, batch_size):
        message = messaging.MulticastMessage(
            tokens=batch,
            notification=messaging.Notification(title=title, body=body),
            data=payload or None,
        )
        try:
            response = await asyncio.to_thread(
                messaging.send_each_for_multicast, message, app=app
            )
        except Exception as e:
            logger.error(f"FCM batch send failed for {len(batch)} tokens: {e}")
            report.failure_count += len(batch)
            continue

        report.success_count += response.success_count
        report.failure_count += response.failure_count

        if response.failure_count > 0:
            for token, send_response in zip(batch, response.responses):
                if send_response.success:
                    continue
                if is_terminal_failure(send_response.exception):
                    report.tokens_to_delete.append(token)
                logger.debug(
                    f"FCM delivery failed for token {token[:12]}...: "
                    f"{send_response.exception}"
                )

    logger.info(
        f"FCM delivery: {report.success_count} sent, {report.failure_count} failed, "
        f"{len(report.tokens_to_delete)} tokens to delete"
    )
    return report


async def purge_tokens(tokens: list[str]) -> int:
    """
    Delete dead tokens from the device token registry.

    Failures are logged and ignored: a stale token simply fails again on the
    next delivery and is retried then.

    Returns:
        Number of tokens deleted
    """
    deleted = 0
    for token in tokens:
        try:
            async with get_transaction() as conn:
                deleted += await delete_device_token(conn, token)
        except Exception as e:
            logger.warning(f"Failed to delete device token {token[:12]}...: {e}")
    if deleted:
        logger.info(f"Deleted {deleted} invalid device tokens")
    return deleted


async def send_push(
    user_ids: list[int],
    title: str,
    body: str,
    data: dict | None = None,
) -> dict:
    """
    Send a push notification to every registered device of the given users.

    Never raises. Returns {"success": True, "sent": N, "failed": M} when the
    provider was called, otherwise {"success": False, "reason": ...} where
    reason is one of "not_configured", "no_user_ids", "no_device_tokens",
    "send_error".
    """
    if _get_app() is None:
        return {"success": False, "reason": "not_configured", "sent": 0, "failed": 0}

    if not user_ids:
        return {"success": False, "reason": "no_user_ids", "sent": 0, "failed": 0}

    try:
        async with get_connection() as conn:
            tokens = await get_tokens_for_users(conn, list(user_ids))

        if not tokens:
            logger.debug(f"No device tokens registered for users {list(user_ids)}")
            return {"success": False, "reason": "no_device_tokens", "sent": 0, "failed": 0}

        report = await send_to_tokens(tokens, title, body, data)
        await purge_tokens(report.tokens_to_delete)
    except Exception as e:
        logger.error(f"Push delivery error: {e}")
        return {
            "success": False,
            "reason": "send_error",
            "error": str(e),
            "sent": 0,
            "failed": 0,
        }

    return {
        "success": True,
        "sent": report.success_count,
        "failed": report.failure_count,
    }
