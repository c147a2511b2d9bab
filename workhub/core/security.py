import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt
from pydantic import ValidationError

from workhub.core.config import settings
from workhub.schemas.auth import TokenClaims

logger = logging.getLogger(__name__)

# Argon2 for password hashing, no 72-byte limit like bcrypt
ph = PasswordHasher(
    time_cost=2,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16
)

USER_CODE_ALPHABET = string.ascii_uppercase + string.digits
# No 0/O or 1/I: guest codes get typed in from an email
GUEST_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a hashed password"""
    if not hashed_password:
        return False
    try:
        return ph.verify(hashed_password, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def get_password_hash(password: str) -> str:
    """Hash a password for storing"""
    return ph.hash(password)


def generate_access_code(length: Optional[int] = None, alphabet: str = USER_CODE_ALPHABET) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length or settings.ACCESS_CODE_LENGTH))


class CredentialService:
    """
    Issues and verifies signed identity claims.

    ``verify`` never raises: an expired, tampered or malformed token simply
    yields ``None`` so callers can treat it as unauthenticated.
    """

    def __init__(
        self,
        secret_key: str = settings.SECRET_KEY,
        algorithm: str = settings.ALGORITHM,
        default_ttl: timedelta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.default_ttl = default_ttl

    def issue(self, claims: TokenClaims, ttl: Optional[timedelta] = None) -> str:
        to_encode = claims.model_dump(mode="json", exclude_none=True)
        to_encode["exp"] = datetime.utcnow() + (ttl or self.default_ttl)
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> Optional[TokenClaims]:
        if not token or not isinstance(token, str):
            return None
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.debug("Token verification failed: %s", e)
            return None
        try:
            return TokenClaims.model_validate(payload)
        except ValidationError:
            logger.debug("Token carries malformed claims")
            return None
