"""
Credential store standing in for a hosted auth provider.

It owns its own tables (auth_accounts, auth_sessions) and knows nothing about
application roles or businesses; services.identity keeps it in step with the
local users table.
"""
from datetime import datetime

import bcrypt
from flask import current_app

from models import db
from models.session import AuthAccount, AuthSession
from security.session import (
    create_session,
    get_active_session,
    revoke_session,
    revoke_all_sessions,
)
from services.errors import AccountExists, InvalidCredentials


def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


class AuthProvider:

    def sign_up(self, email: str, password: str) -> AuthAccount:
        email = normalize_email(email)
        if AuthAccount.query.filter_by(email=email).first():
            raise AccountExists()

        account = AuthAccount(email=email, password_hash=hash_password(password))
        db.session.add(account)
        db.session.commit()
        return account

    def sign_in(self, email: str, password: str):
        """Returns (account, raw_token) or raises InvalidCredentials."""
        account = AuthAccount.query.filter_by(email=normalize_email(email)).first()
        if not account or not verify_password(password, account.password_hash):
            raise InvalidCredentials()

        # Rotate: one live session per account
        revoke_all_sessions(account.id)
        raw_token = create_session(account.id)
        account.last_sign_in_at = datetime.utcnow()
        db.session.commit()
        return account, raw_token

    def get_account(self, raw_token: str):
        sess = get_active_session(raw_token)
        if not sess:
            return None
        return db.session.get(AuthAccount, sess.account_id)

    def get_account_by_id(self, account_id: str):
        return db.session.get(AuthAccount, account_id)

    def sign_out(self, raw_token: str) -> bool:
        return revoke_session(raw_token)

    def delete_account(self, account_id: str) -> bool:
        account = db.session.get(AuthAccount, account_id)
        if not account:
            return False
        AuthSession.query.filter_by(account_id=account_id).delete()
        db.session.delete(account)
        db.session.commit()
        return True


def get_auth_provider() -> AuthProvider:
    return current_app.extensions["auth_provider"]
