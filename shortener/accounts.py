"""Account directory: registration, verification, login and credential changes.

The link core only needs a stable user id to key ownership; this module is
where that id comes from. It runs on its own key-value namespace.

Key Layout (users namespace)
============================
::
    {user_id}           -> User JSON (with password hash)
    email:{email}       -> user_id
    username:{name}     -> user_id
    verified:{user_id}  -> "true" | "false"
    verify:{token}      -> user_id   (TTL VERIFY_TOKEN_TTL_SECONDS)
    reset:{token}       -> email     (TTL RESET_TOKEN_TTL_SECONDS)

Key Behaviours
===============
- Email and username uniqueness is check-then-act, like custom short codes.
- Tokens are single use: verification and reset delete them.
- Email delivery failures are logged by the sender and do not fail the call.
"""

import logging
import uuid

import bcrypt
from nanoid import generate

from shortener.errors import (
    AuthenticationFailed,
    Conflict,
    InvalidInput,
    NotFound,
    NotVerified,
)
from shortener.mailer import EmailSender
from shortener.schemas import PublicUser, User, utcnow
from shortener.store import KeyValueStore

__all__ = ["AccountDirectory", "PasswordHasher"]

logger = logging.getLogger("shortener.accounts")

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """bcrypt hashes with a configurable cost factor."""

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds

    def hash(self, password: str) -> str:
        secret = password.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            raise InvalidInput(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(secret, bcrypt.gensalt(self.rounds)).decode("utf-8")

    def verify(self, password: str, encoded: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), encoded.encode("utf-8"))
        except ValueError:
            # Malformed stored hash or over-long candidate
            return False


class AccountDirectory:
    def __init__(
        self,
        store: KeyValueStore,
        mailer: EmailSender,
        hasher: PasswordHasher | None = None,
        frontend_url: str = "http://localhost:3000",
        verify_ttl: int = 86400,
        reset_ttl: int = 900,
    ) -> None:
        self._store = store
        self._mailer = mailer
        self._hasher = hasher or PasswordHasher()
        self._frontend_url = frontend_url.rstrip("/")
        self._verify_ttl = verify_ttl
        self._reset_ttl = reset_ttl

    # ------------------------------------------------------------------
    # Registration and login
    # ------------------------------------------------------------------

    async def register(self, username: str | None, email: str | None, password: str | None) -> PublicUser:
        if not username or not email or not password:
            raise InvalidInput("Username, email, and password are required")
        if await self._store.get(f"email:{email}"):
            raise Conflict("Email already registered")
        if await self._store.get(f"username:{username}"):
            raise Conflict("Username already taken")

        user = User(
            id=generate(size=16),
            username=username,
            email=email,
            password_hash=self._hasher.hash(password),
            created_at=utcnow(),
        )
        await self._save(user)
        await self._store.put(f"email:{email}", user.id)
        await self._store.put(f"username:{username}", user.id)
        await self._store.put(f"verified:{user.id}", "false")

        token = str(uuid.uuid4())
        await self._store.put(f"verify:{token}", user.id, ttl=self._verify_ttl)
        await self._mailer.send(
            email,
            "Verify your account",
            f"Click to verify your account: {self._frontend_url}/verify-register?token={token}",
        )
        logger.info(f"Registered user {user.id}")
        return user.public()

    async def verify_email(self, token: str | None) -> None:
        user_id = await self._store.get(f"verify:{token}") if token else None
        if not user_id:
            raise InvalidInput("Invalid or expired verification token")
        await self._store.delete(f"verify:{token}")
        await self._store.put(f"verified:{user_id}", "true")
        logger.info(f"Email verified for user: {user_id}")

    async def login(self, email: str | None, password: str | None) -> PublicUser:
        if not email or not password:
            raise InvalidInput("Email and password are required")
        user_id = await self._store.get(f"email:{email}")
        if not user_id:
            raise AuthenticationFailed("Invalid email or password")
        user = await self._require_user(user_id)
        if not self._hasher.verify(password, user.password_hash):
            raise AuthenticationFailed("Invalid email or password")
        if await self._store.get(f"verified:{user_id}") != "true":
            raise NotVerified("User not verified")
        return user.public()

    # ------------------------------------------------------------------
    # Credential changes
    # ------------------------------------------------------------------

    async def change_username(self, user_id: str | None, new_username: str | None) -> PublicUser:
        if not user_id or not new_username:
            raise InvalidInput("User ID and new username are required")
        if await self._store.get(f"username:{new_username}"):
            raise Conflict("Username already taken")
        user = await self._require_user(user_id)

        old_username = user.username
        user.username = new_username
        await self._save(user)
        await self._store.put(f"username:{new_username}", user.id)
        await self._store.delete(f"username:{old_username}")
        return user.public()

    async def change_email(self, user_id: str | None, new_email: str | None) -> PublicUser:
        if not user_id or not new_email:
            raise InvalidInput("User ID and new email are required")
        if await self._store.get(f"email:{new_email}"):
            raise Conflict("Email already registered")
        user = await self._require_user(user_id)

        old_email = user.email
        user.email = new_email
        await self._save(user)
        await self._store.put(f"email:{new_email}", user.id)
        await self._store.delete(f"email:{old_email}")
        return user.public()

    async def change_password(
        self, user_id: str | None, old_password: str | None, new_password: str | None
    ) -> PublicUser:
        if not user_id or not old_password or not new_password:
            raise InvalidInput("User ID, old password, and new password are required")
        user = await self._require_user(user_id)
        if not self._hasher.verify(old_password, user.password_hash):
            raise AuthenticationFailed("Invalid old password")
        user.password_hash = self._hasher.hash(new_password)
        await self._save(user)
        return user.public()

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    async def request_password_reset(self, email: str | None) -> None:
        if not email:
            raise InvalidInput("Email is required")
        if not await self._store.get(f"email:{email}"):
            raise NotFound("Email not registered")

        token = str(uuid.uuid4())
        await self._store.put(f"reset:{token}", email, ttl=self._reset_ttl)
        await self._mailer.send(
            email,
            "Reset your password",
            f"Click to reset: {self._frontend_url}/email-redirect?token={token}",
        )

    async def reset_password(self, token: str | None, new_password: str | None) -> None:
        if not new_password:
            raise InvalidInput("New password is required")
        email = await self._store.get(f"reset:{token}") if token else None
        if not email:
            raise InvalidInput("Invalid or expired token")
        user_id = await self._store.get(f"email:{email}")
        if not user_id:
            raise NotFound("User not found")

        user = await self._require_user(user_id)
        user.password_hash = self._hasher.hash(new_password)
        await self._save(user)
        await self._store.delete(f"reset:{token}")
        logger.info(f"Password reset for user {user_id}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _require_user(self, user_id: str) -> User:
        raw = await self._store.get(user_id)
        if raw is None:
            raise NotFound("User not found")
        return User.model_validate_json(raw)

    async def _save(self, user: User) -> None:
        await self._store.put(user.id, user.to_json())
