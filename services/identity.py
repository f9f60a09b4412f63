"""
Session/identity gateway.

Two stores describe every signed-in principal: the auth provider's account
(credentials, sessions) and the local users row (role, business). The local
row reuses the account id as its primary key. Registration writes the
account first and the local row second; if the second step fails the account
is deleted again. Requests whose account resolves but whose local row is
missing or disabled are rejected with SyncMismatch so callers can tell
"needs repair" apart from "not signed in".
"""
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.business import Business
from models.user import User, ROLE_ADMIN, ROLE_CUSTOMER, ROLE_STAFF, ROLE_SUPER_ADMIN
from security.auth_provider import get_auth_provider, normalize_email
from security.bruteforce import is_locked, register_failure, reset_attempts
from security.session import read_request_token
from services.errors import (
    AccountExists,
    AccountLocked,
    InvalidCredentials,
    SyncMismatch,
    Unauthorized,
    ValidationFailed,
)
from utils.audit import log_event

STAFF_ROLES = frozenset({ROLE_STAFF, ROLE_ADMIN, ROLE_SUPER_ADMIN})


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str
    role: str
    business_id: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "email": self.email,
            "role": self.role,
            "businessId": self.business_id,
            "name": self.name,
        }


@dataclass
class SyncStatus:
    synced: bool
    reason: Optional[str] = None
    user: Optional[User] = None


def identity_from_user(user: User) -> Identity:
    return Identity(
        user_id=user.id,
        email=user.email,
        role=user.role,
        business_id=user.business_id,
        name=user.name,
    )


def validate_user_sync(account) -> SyncStatus:
    if account is None:
        return SyncStatus(False, "No auth account")

    user = db.session.get(User, account.id)
    if user is None:
        return SyncStatus(False, "User exists in auth provider but not in database")
    if not user.is_active or user.is_deleted:
        return SyncStatus(False, "User is inactive or deleted", user)
    return SyncStatus(True, user=user)


def get_current_identity(request=None) -> Optional[Identity]:
    """
    Resolve the caller from the session cookie or bearer token.

    Returns None for anonymous callers and raises SyncMismatch when the
    two identity stores disagree.
    """
    raw_token, _ = read_request_token(request)
    if not raw_token:
        return None

    account = get_auth_provider().get_account(raw_token)
    if account is None:
        return None

    status = validate_user_sync(account)
    if not status.synced:
        raise SyncMismatch(details={"reason": status.reason})
    return identity_from_user(status.user)


def _compensate_account(account_id: str):
    """Best-effort removal of an auth account whose local user never landed."""
    try:
        get_auth_provider().delete_account(account_id)
    except Exception:
        db.session.rollback()
        current_app.logger.error(
            "Compensation failed: auth account %s is orphaned and needs manual cleanup",
            account_id,
            exc_info=True,
        )
    else:
        current_app.logger.warning(
            "Removed auth account %s after local user creation failed", account_id
        )


def register_user(email: str, password: str, name: str, business_id=None,
                  role: str = ROLE_CUSTOMER, phone=None) -> User:
    account = get_auth_provider().sign_up(email, password)
    account_id, account_email = account.id, account.email
    try:
        user = User(
            id=account_id,
            email=account_email,
            name=name,
            phone=phone,
            role=role,
            business_id=business_id,
            is_active=True,
        )
        db.session.add(user)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error("Local user creation failed for %s: %s", account_email, exc)
        _compensate_account(account_id)
        if isinstance(exc, IntegrityError):
            raise AccountExists() from exc
        raise

    log_event("REGISTER_SUCCESS", user_id=user.id, entity="user", entity_id=user.id, metadata={"role": role})
    return user


def _slug_taken(slug: str) -> bool:
    return Business.query.filter_by(slug=slug).first() is not None


def _slug_taken_error() -> ValidationFailed:
    return ValidationFailed(
        "Invalid registration data",
        details=[{"field": "slug", "message": "Slug is already taken"}],
    )


def _is_slug_conflict(exc: IntegrityError) -> bool:
    # sqlite names the column, postgres the index; both mention the slug
    return "slug" in str(exc.orig).lower()


def register_business(owner_email: str, password: str, owner_name: str, business_name: str,
                      slug: str, business_email: str, business_phone: str,
                      owner_phone=None, address=None, description=None):
    """
    Create a business and its ADMIN owner.

    Business and user are written in one transaction, so a failure on the
    user insert cannot leave an orphaned business behind.
    """
    if _slug_taken(slug):
        raise _slug_taken_error()

    account = get_auth_provider().sign_up(owner_email, password)
    account_id, account_email = account.id, account.email
    try:
        business = Business(
            name=business_name,
            slug=slug,
            email=business_email,
            phone=business_phone,
            address=address,
            description=description,
        )
        db.session.add(business)
        db.session.flush()

        user = User(
            id=account_id,
            email=account_email,
            name=owner_name,
            phone=owner_phone,
            role=ROLE_ADMIN,
            business_id=business.id,
        )
        db.session.add(user)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.error("Business registration failed for %s: %s", account_email, exc)
        _compensate_account(account_id)
        if isinstance(exc, IntegrityError):
            # a concurrent registration can take the slug after the check above
            if _is_slug_conflict(exc):
                raise _slug_taken_error() from exc
            raise AccountExists() from exc
        raise

    log_event("REGISTER_SUCCESS", user_id=user.id, entity="business", entity_id=business.id)
    return business, user


def add_staff_member(actor: Identity, email: str, password: str, name: str, phone=None) -> User:
    if actor is None or actor.role not in (ROLE_ADMIN, ROLE_SUPER_ADMIN):
        raise Unauthorized()
    if not actor.business_id:
        raise Unauthorized("No business associated with this account")

    user = register_user(email, password, name, business_id=actor.business_id, role=ROLE_STAFF, phone=phone)
    log_event("STAFF_CREATE", user_id=actor.user_id, entity="user", entity_id=user.id)
    return user


def login(email: str, password: str):
    """Returns (raw_token, identity)."""
    email = normalize_email(email)

    locked, seconds_left = is_locked(email)
    if locked:
        log_event("LOGIN_LOCKED", metadata={"email": email, "seconds_left": seconds_left})
        raise AccountLocked(seconds_left)

    provider = get_auth_provider()
    try:
        account, raw_token = provider.sign_in(email, password)
    except InvalidCredentials:
        fail_count, locked_now = register_failure(email)
        log_event("LOGIN_FAIL", metadata={"email": email, "fail_count": fail_count, "locked_now": locked_now})
        if locked_now:
            lock_seconds = current_app.config.get("LOCKOUT_MINUTES", 1) * 60
            raise AccountLocked(lock_seconds, "Too many failed attempts. Account locked.")
        raise

    reset_attempts(email)

    status = validate_user_sync(account)
    if not status.synced:
        provider.sign_out(raw_token)
        current_app.logger.warning("User sync issue for %s: %s", email, status.reason)
        log_event("LOGIN_SYNC_MISMATCH", metadata={"email": email, "reason": status.reason})
        raise SyncMismatch(details={"reason": status.reason})

    log_event("LOGIN_SUCCESS", user_id=account.id)
    return raw_token, identity_from_user(status.user)


def logout(raw_token: str, identity: Optional[Identity] = None) -> bool:
    revoked = get_auth_provider().sign_out(raw_token)
    log_event("LOGOUT", user_id=identity.user_id if identity else None)
    return revoked
