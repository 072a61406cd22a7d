from __future__ import annotations

import logging
import re
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from email_validator import EmailNotValidError, validate_email

from resuopti.config import Settings, get_settings
from resuopti.core.cache import LRUCache, user_key
from resuopti.db.repositories import Repository
from resuopti.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from resuopti.services.mapping import to_user_summary
from resuopti.types import LoginResult, TokenClaims, UserSummary

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72

_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")


def _blank(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


def check_password_policy(password: object) -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError("WeakPassword", f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not _LETTER.search(password) or not _DIGIT.search(password):
        raise ValidationError("WeakPassword", "password must contain both letters and digits")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError("PasswordTooLong", f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


class CredentialService:
    def __init__(
        self,
        repo: Repository,
        *,
        cache: LRUCache,
        settings: Settings | None = None,
    ):
        self.repo = repo
        self.cache = cache
        self.settings = settings or get_settings()

    def hash_password(self, password: str) -> str:
        try:
            salt = bcrypt.gensalt(rounds=self.settings.bcrypt_rounds)
            return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")
        except (TypeError, ValueError) as exc:
            logger.exception("Password hashing failed")
            raise InternalError("password hashing failed") from exc

    def verify_password(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except (TypeError, ValueError) as exc:
            logger.exception("Password verification failed")
            raise InternalError("password verification failed") from exc

    def issue_token(self, user_id: str, email: str, expires_in: timedelta | None = None) -> str:
        issued_at = datetime.now(UTC)
        lifetime = expires_in if expires_in is not None else timedelta(minutes=self.settings.token_ttl_min)
        payload = {
            "sub": user_id,
            "email": email,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + lifetime).timestamp()),
        }
        try:
            return jwt.encode(payload, self.settings.secret_key, algorithm=self.settings.token_algorithm)
        except (TypeError, ValueError, jwt.PyJWTError) as exc:
            logger.exception("Token signing failed")
            raise InternalError("token signing failed") from exc

    def verify_token(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[self.settings.token_algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("TokenExpired", "token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError("TokenInvalid", "token is invalid") from exc

        email = payload.get("email")
        if not isinstance(email, str):
            raise AuthenticationError("TokenInvalid", "token is invalid")

        return TokenClaims(
            user_id=payload["sub"],
            email=email,
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )

    def register(self, email: str, password: str) -> UserSummary:
        if not isinstance(email, str) or not email:
            raise ValidationError("InvalidEmail", "email address is not valid")
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as exc:
            raise ValidationError("InvalidEmail", "email address is not valid") from exc

        check_password_policy(password)

        if self.repo.get_user_by_email(email) is not None:
            raise ConflictError("EmailTaken", "email address is already registered")

        user = self.repo.create_user(email=email, password_hash=self.hash_password(password))
        summary = to_user_summary(user)
        self.cache.set(user_key(user.id), summary.model_copy(), self.settings.user_cache_ttl_sec)
        logger.info("Registered user user_id=%s", user.id)
        return summary

    def login(self, email: str, password: str) -> LoginResult:
        if _blank(email) or _blank(password):
            raise ValidationError("EmptyCredentials", "email and password are required")

        user = self.repo.get_user_by_email(email)
        if user is None:
            raise AuthenticationError("UserNotFound", "no user with this email")

        too_long = len(password.encode("utf-8")) > MAX_PASSWORD_BYTES
        if too_long or not self.verify_password(password, user.password_hash):
            raise AuthenticationError("InvalidPassword", "password does not match")

        summary = to_user_summary(user)
        self.cache.set(user_key(user.id), summary.model_copy(), self.settings.user_cache_ttl_sec)
        return LoginResult(user=summary, token=self.issue_token(user.id, user.email))

    def get_user(self, user_id: str) -> UserSummary:
        if _blank(user_id) or ":" in user_id:
            raise NotFoundError("user not found", code="UserNotFound")

        def load() -> UserSummary:
            user = self.repo.get_user(user_id)
            if user is None:
                raise NotFoundError("user not found", code="UserNotFound")
            return to_user_summary(user)

        cached = self.cache.wrap(user_key(user_id), load, self.settings.user_cache_ttl_sec)
        return cached.model_copy(deep=True)
