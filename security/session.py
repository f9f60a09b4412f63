import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app, has_request_context

from models import db
from models.session import AuthSession

def _hash_token(token: str) -> str:
    # SHA-256 is fine for hashing random session tokens
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def create_session(account_id: str) -> str:
    """
    Creates a server-side session and returns the RAW token (cookie or bearer value).
    Only the hash is stored in DB.
    """
    raw_token = secrets.token_urlsafe(32)

    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)
    expires_at = datetime.utcnow() + timedelta(seconds=lifetime)

    ip = user_agent = None
    if has_request_context():
        ip = request.remote_addr
        user_agent = (request.headers.get("User-Agent") or "")[:255]

    row = AuthSession(
        account_id=account_id,
        token_hash=_hash_token(raw_token),
        expires_at=expires_at,
        ip=ip,
        user_agent=user_agent,
    )
    db.session.add(row)
    db.session.commit()
    return raw_token

def read_request_token(req=None):
    """Cookie first, then an Authorization: Bearer header. Returns (token, source)."""
    req = req if req is not None else request
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "spotless_session")
    raw_token = req.cookies.get(cookie_name)
    if raw_token:
        return raw_token, "cookie"

    auth_header = req.headers.get("Authorization", "")
    scheme, _, value = auth_header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip(), "bearer"
    return None, None

def get_active_session(raw_token: str):
    if not raw_token:
        return None

    now = datetime.utcnow()
    sess = (
        AuthSession.query
        .filter_by(token_hash=_hash_token(raw_token), revoked=False)
        .first()
    )
    if not sess:
        return None

    # Absolute expiry
    if sess.expires_at <= now:
        return None

    # Idle timeout
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 1800)
    last_seen = sess.last_seen_at or sess.created_at
    if (last_seen + timedelta(seconds=idle_seconds)) <= now:
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess

def revoke_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = AuthSession.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess:
        return False
    sess.revoked = True
    db.session.commit()
    return True

def revoke_all_sessions(account_id: str) -> int:
    sessions = AuthSession.query.filter_by(account_id=account_id, revoked=False).all()
    for s in sessions:
        s.revoked = True
    db.session.commit()
    return len(sessions)
