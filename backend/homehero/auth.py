import base64
import hashlib
import hmac
import logging
import os
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Optional

import firebase_admin
from fastapi import Header, HTTPException, status
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin import exceptions as firebase_exceptions

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_HOURS = 24


def _token_ttl_hours() -> int:
    raw = os.getenv("AUTH_TOKEN_TTL_HOURS", str(DEFAULT_TOKEN_TTL_HOURS))
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_TOKEN_TTL_HOURS
    return value if value > 0 else DEFAULT_TOKEN_TTL_HOURS


TOKEN_TTL_HOURS = _token_ttl_hours()
AUTH_REQUIRED = os.getenv("AUTH_REQUIRED", "false").lower() in {"1", "true", "yes"}
DEMO_PASSWORD = os.getenv("AUTH_DEMO_PASSWORD", "homehero-demo")
_AUTH_SECRET = os.getenv("AUTH_SECRET", "dev-insecure-secret-change-me")


class FirebaseTokenVerifier:
    """Verifies Firebase ID tokens once credentials are configured."""

    def __init__(self):
        self._lock = Lock()
        self._initialized = False
        self._enabled = False

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._lock:
            if self._initialized:
                return
            credentials_path = os.getenv("FIREBASE_CREDENTIALS_PATH", "").strip()
            if not credentials_path:
                self._initialized = True
                self._enabled = False
                logger.info("Firebase token verification disabled: FIREBASE_CREDENTIALS_PATH not set")
                return
            try:
                cred = credentials.Certificate(credentials_path)
                if not firebase_admin._apps:  # pylint: disable=protected-access
                    firebase_admin.initialize_app(cred)
                self._enabled = True
                logger.info("Firebase token verification initialized")
            except (OSError, ValueError):
                self._enabled = False
                logger.exception("Firebase token verification disabled: Firebase init failed")
            finally:
                self._initialized = True

    @property
    def enabled(self) -> bool:
        self._ensure_initialized()
        return self._enabled

    def verify(self, token: str) -> Optional[str]:
        if not self.enabled:
            return None
        try:
            decoded = firebase_auth.verify_id_token(token)
        except (ValueError, firebase_exceptions.FirebaseError):
            return None
        email = decoded.get("email")
        return email.strip().lower() if isinstance(email, str) and email.strip() else None


firebase_verifier = FirebaseTokenVerifier()


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _b64urldecode(value: str) -> bytes:
    padding = "=" * ((4 - len(value) % 4) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("utf-8"))


def create_access_token(email: str) -> tuple[str, str]:
    expiry = datetime.now(timezone.utc) + timedelta(hours=TOKEN_TTL_HOURS)
    payload = f"{email}|{int(expiry.timestamp())}".encode("utf-8")
    payload_part = _b64url(payload)
    sig = hmac.new(_AUTH_SECRET.encode("utf-8"), payload, hashlib.sha256).digest()
    token = f"{payload_part}.{_b64url(sig)}"
    return token, expiry.isoformat()


def verify_access_token(token: str) -> Optional[str]:
    try:
        payload_part, sig_part = token.split(".", 1)
        payload = _b64urldecode(payload_part)
        sent_sig = _b64urldecode(sig_part)
        expected_sig = hmac.new(_AUTH_SECRET.encode("utf-8"), payload, hashlib.sha256).digest()
        if not hmac.compare_digest(sent_sig, expected_sig):
            return None
        email, expiry_ts = payload.decode("utf-8").rsplit("|", 1)
        if datetime.now(timezone.utc).timestamp() > int(expiry_ts):
            return None
        return email
    except ValueError:
        return None


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def resolve_request_email(authorization: Optional[str]) -> Optional[str]:
    token = parse_bearer_token(authorization)
    if not token:
        return None
    return verify_access_token(token) or firebase_verifier.verify(token)


def require_authenticated_user(authorization: Optional[str] = Header(default=None)) -> str:
    email = resolve_request_email(authorization)
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing bearer token")
    return email


def resolve_actor_email(claimed_email: Optional[str], authorization: Optional[str]) -> str:
    """Return the acting identity for a request.

    A verified token wins and must agree with any email the client sent.
    Without a token the client-supplied email is trusted unless
    ``AUTH_REQUIRED`` is set.
    """
    claimed = (claimed_email or "").strip().lower()
    if parse_bearer_token(authorization):
        token_email = resolve_request_email(authorization)
        if not token_email:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
        if claimed and claimed != token_email:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token user does not match request email")
        return token_email
    if AUTH_REQUIRED:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return claimed
