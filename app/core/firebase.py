"""Firebase Admin SDK initialization and utilities."""

import json
import os
from typing import Any

import firebase_admin
from firebase_admin import auth, credentials
from starlette.concurrency import run_in_threadpool
from structlog import get_logger

logger = get_logger(__name__)

_firebase_app: firebase_admin.App | None = None


def initialize_firebase(
    firebase_credentials_path: str | None = None, firebase_config_json: str | None = None
) -> None:
    """
    Initialize Firebase Admin SDK.

    Args:
        firebase_credentials_path: Optional path to service account JSON file.
        firebase_config_json: Optional raw JSON string of service account.

    Looks for Firebase credentials in order:
    1. firebase_config_json parameter
    2. firebase_credentials_path parameter
    3. Default application credentials
    """
    global _firebase_app

    if _firebase_app is not None:
        logger.info("Firebase already initialized")
        return

    try:
        cred = None

        if firebase_config_json:
            logger.info("Initializing Firebase with JSON string from environment")
            cred_dict = json.loads(firebase_config_json)
            cred = credentials.Certificate(cred_dict)

        elif firebase_credentials_path and os.path.exists(firebase_credentials_path):
            logger.info("Initializing Firebase with JSON file", path=firebase_credentials_path)
            cred = credentials.Certificate(firebase_credentials_path)

        if cred:
            _firebase_app = firebase_admin.initialize_app(cred)
        else:
            _firebase_app = firebase_admin.initialize_app()
            logger.info("Firebase initialized with default credentials")

    except Exception as e:
        logger.error("Failed to initialize Firebase", error=str(e))
        raise


def get_firebase_app() -> firebase_admin.App:
    """
    Get the Firebase app instance.

    Raises:
        RuntimeError: If Firebase is not initialized
    """
    if _firebase_app is None:
        raise RuntimeError("Firebase not initialized. Call initialize_firebase() first.")
    return _firebase_app


async def verify_firebase_token(id_token: str) -> dict:
    """
    Verify a Firebase ID token.

    Args:
        id_token: Firebase ID token from the client

    Returns:
        Decoded token containing user information

    Raises:
        ValueError: If token is invalid, expired, revoked or belongs to a disabled user
    """
    try:
        decoded_token = await run_in_threadpool(
            auth.verify_id_token, id_token, check_revoked=True, clock_skew_seconds=10
        )

        logger.info(
            "Firebase token verified",
            uid=decoded_token.get("uid"),
            email=decoded_token.get("email"),
        )

        return decoded_token

    except auth.RevokedIdTokenError as e:
        logger.info("Revoked Firebase ID token", error=str(e))
        raise ValueError(f"Revoked Firebase ID token: {e!s}")

    except auth.UserDisabledError as e:
        logger.warning("Firebase user disabled", error=str(e))
        raise ValueError(f"Disabled Firebase user: {e!s}")

    except auth.InvalidIdTokenError as e:
        logger.warning("Invalid or expired Firebase ID token", error=str(e))
        raise ValueError(f"Invalid Firebase ID token: {e!s}")


async def revoke_firebase_sessions(uid: str) -> None:
    """Revoke every refresh token issued to the user."""
    await run_in_threadpool(auth.revoke_refresh_tokens, uid)
    logger.info("Firebase refresh tokens revoked", uid=uid)


async def update_firebase_user(uid: str, full_name: str | None, avatar_url: str | None) -> Any:
    """
    Mirror profile display fields into the Firebase user record.

    Empty values remove the attribute; None leaves it unchanged.

    Returns:
        Updated Firebase UserRecord
    """
    changes: dict[str, Any] = {}
    if full_name is not None:
        changes["display_name"] = full_name or auth.DELETE_ATTRIBUTE
    if avatar_url is not None:
        changes["photo_url"] = avatar_url or auth.DELETE_ATTRIBUTE

    return await run_in_threadpool(auth.update_user, uid, **changes)
