"""User accounts, login sessions and linked OAuth identities."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional

from pos_api.core.config import SESSION_TTL_DEFAULT
from pos_api.core.security import hash_password, needs_rehash, verify_password
from pos_api.core.utils import generate_id, isoformat, parse_iso
from pos_api.db.errors import DuplicateRecordError

from .base import HashRepository, Record, absorbs, decode_record, encode_record

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@aenzbi.com"
DEFAULT_ADMIN_PASSWORD = "adminsystem"
OAUTH_ACCOUNTS_KEY = "oauth_accounts"


def _normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


class UserRepository(HashRepository):
    bucket = "users"
    revalidate_paths = ("/dashboard/profile",)

    def present(self, record: Record) -> Record:
        return {key: value for key, value in record.items() if key not in ("passwordHash", "password")}

    def _find_raw_by_email(self, email: str) -> Optional[Record]:
        wanted = _normalize_email(email)
        if not wanted:
            return None
        for record in self._read_hash(self.bucket):
            if _normalize_email(record.get("email")) == wanted:
                return record
        return None

    @absorbs(None)
    def get_by_email(self, email: str) -> Optional[Record]:
        record = self._find_raw_by_email(email)
        return self.present(record) if record else None

    def _prepare(self, data: Record) -> Record:
        prepared = dict(data)
        password = prepared.pop("password", None)
        if password:
            prepared["passwordHash"] = hash_password(str(password))
        if "email" in prepared:
            prepared["email"] = (prepared["email"] or "").strip()
        return prepared

    @absorbs(None)
    def create(self, data: Record) -> Record:
        if self._find_raw_by_email(data.get("email", "")):
            raise DuplicateRecordError(f"User with email {data.get('email')} already exists")
        record = self.build(self._prepare(data))
        self._write(record)
        self.revalidate()
        return self.present(record)

    @absorbs(None)
    def update(self, record_id: str, changes: Record) -> Record:
        if changes.get("email"):
            other = self._find_raw_by_email(changes["email"])
            if other and other.get("id") != record_id:
                raise DuplicateRecordError(f"User with email {changes['email']} already exists")
        return self.present(self._apply_update(record_id, self._prepare(changes)))

    @absorbs(None)
    def authenticate(self, email: str, password: str) -> Optional[Record]:
        """Return the public user record when the credentials match, else ``None``."""
        record = self._find_raw_by_email(email)
        if not record or not verify_password(password or "", record.get("passwordHash")):
            return None
        changes: dict[str, Any] = {"lastLoginAt": self.now()}
        if needs_rehash(record.get("passwordHash")):
            changes["password"] = password
        return self.present(self._apply_update(record["id"], self._prepare(changes)))

    def create_default_admin(self) -> Record:
        existing = self.get_by_email(DEFAULT_ADMIN_EMAIL)
        if existing:
            logger.debug("Default admin user already exists")
            return existing
        user = self.create(
            {
                "name": "System Administrator",
                "email": DEFAULT_ADMIN_EMAIL,
                "password": DEFAULT_ADMIN_PASSWORD,
                "role": "admin",
                "businessId": "default",
                "isSystemAdmin": True,
            }
        )
        logger.info("Default admin user created")
        return user

    def seed_records(self):
        return [
            {
                "name": "Manager User",
                "email": "manager@example.com",
                "password": "password123",
                "role": "manager",
                "businessId": "default",
            },
            {
                "name": "Cashier User",
                "email": "cashier@example.com",
                "password": "password123",
                "role": "cashier",
                "businessId": "default",
            },
        ]

    @absorbs(False)
    def seed_if_empty(self) -> bool:
        """Seed admin + sample users on an empty bucket; otherwise only make sure the admin exists."""
        if self.store.hlen(self.bucket) > 0:
            self.create_default_admin()
            return False
        self.create_default_admin()
        created = sum(1 for data in self.seed_records() if self.create(data))
        logger.info("Seeded %d initial users", created)
        return True

    # ------------------------------------------------------------------ oauth
    def _oauth_key(self, provider: str, account_id: str) -> str:
        return f"{provider}:{account_id}"

    @absorbs(False)
    def link_oauth_account(
        self,
        user_id: str,
        provider: str,
        account_id: str,
        provider_data: dict | None = None,
    ) -> bool:
        field = self._oauth_key(provider, account_id)
        raw = self.store.hget(OAUTH_ACCOUNTS_KEY, field)
        now = self.now()
        created_at = now
        if raw is not None:
            existing = decode_record(raw, f"{OAUTH_ACCOUNTS_KEY}/{field}")
            if existing.get("userId") != user_id:
                raise DuplicateRecordError(f"{provider} account already linked to another user")
            created_at = existing.get("createdAt", now)
        link = {
            "userId": user_id,
            "provider": provider,
            "providerAccountId": account_id,
            "providerData": provider_data or {},
            "createdAt": created_at,
            "updatedAt": now,
        }
        self.store.hset(OAUTH_ACCOUNTS_KEY, field, encode_record(link))
        return True

    @absorbs(None)
    def get_by_oauth_account(self, provider: str, account_id: str) -> Optional[Record]:
        raw = self.store.hget(OAUTH_ACCOUNTS_KEY, self._oauth_key(provider, account_id))
        if raw is None:
            return None
        link = decode_record(raw, OAUTH_ACCOUNTS_KEY)
        return self.get_by_id(link.get("userId", ""))

    def create_or_get_from_oauth(self, profile: dict, provider: str, account_id: str) -> Optional[Record]:
        linked = self.get_by_oauth_account(provider, account_id)
        if linked:
            return linked
        email = profile.get("email") or ""
        user = self.get_by_email(email)
        if not user:
            user = self.create(
                {
                    "name": profile.get("name") or email.split("@")[0],
                    "email": email,
                    "image": profile.get("image"),
                    "password": generate_id(),
                    "role": "admin",
                    "businessId": "default",
                }
            )
        if user:
            self.link_oauth_account(user["id"], provider, account_id)
        return user


class SessionRepository(HashRepository):
    bucket = "sessions"

    def __init__(self, store, revalidator=None, *, clock=None, ttl_seconds: int = SESSION_TTL_DEFAULT) -> None:
        super().__init__(store, revalidator, clock=clock)
        self.ttl_seconds = ttl_seconds

    @absorbs(None)
    def open_session(self, user_id: str) -> Record:
        started = self._clock()
        record = {
            "id": generate_id(),
            "userId": user_id,
            "createdAt": isoformat(started),
            "expiresAt": isoformat(started + timedelta(seconds=self.ttl_seconds)),
        }
        self._write(record)
        return record

    @absorbs(None)
    def get_active(self, session_id: str) -> Optional[Record]:
        """Return the session if it exists and has not expired; expired sessions are removed."""
        if not session_id:
            return None
        record = self._load(session_id)
        if record is None:
            return None
        expires_at = parse_iso(record.get("expiresAt"))
        if expires_at is None or expires_at <= self._clock():
            self.store.hdel(self.bucket, session_id)
            logger.debug("Dropped expired session %s", session_id)
            return None
        return record

    @absorbs(False)
    def close_session(self, session_id: str) -> bool:
        if not session_id:
            return False
        return self.store.hdel(self.bucket, session_id) > 0
