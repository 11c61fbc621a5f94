"""Password hashing and the bearer-token codec."""

import bcrypt
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from marketplace.core.config import settings
from marketplace.core.exceptions import AuthenticationError

# JWT bearer scheme; a missing or non-Bearer header yields None instead of 403
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access token.

    ``role`` is the snapshot taken at issuance. It is for display only;
    authorization always reloads the live role.
    """
    principal_id: int
    principal_type: str
    email: Optional[str]
    role: Dict[str, Any]
    issued_at: Optional[int]
    expires_at: int


class TokenCodec:
    """Signs and verifies HS256 access tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expiry_minutes: int = 60 * 24 * 30,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.expiry_minutes = expiry_minutes

    def issue(
        self,
        principal,
        principal_type: str,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Create a signed access token for ``principal``."""
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.expiry_minutes))
        role = principal.role
        payload = {
            "sub": str(principal.id),
            "email": principal.email,
            "type": str(getattr(principal_type, "value", principal_type)),
            "role": {
                "code": role.code if role else None,
                "name": role.name if role else None,
                "is_super_admin": bool(role.is_super_admin) if role else False,
            },
            "iat": int(now.timestamp()),
            "exp": expire,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Decode and validate a token; anything short of fully valid is rejected."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError:
            raise AuthenticationError("Invalid or expired token")

        sub = payload.get("sub")
        principal_type = payload.get("type")
        if sub is None or not principal_type or "exp" not in payload:
            raise AuthenticationError("Invalid token payload")
        try:
            principal_id = int(sub)
        except (TypeError, ValueError):
            raise AuthenticationError("Invalid token payload")

        role = payload.get("role")
        return TokenClaims(
            principal_id=principal_id,
            principal_type=principal_type,
            email=payload.get("email"),
            role=role if isinstance(role, dict) else {},
            issued_at=payload.get("iat"),
            expires_at=payload["exp"],
        )


token_codec = TokenCodec(
    settings.JWT_SECRET,
    algorithm=settings.JWT_ALGORITHM,
    expiry_minutes=settings.JWT_EXPIRY_MINUTES,
)


def create_access_token(principal, principal_type: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token with the application's codec."""
    return token_codec.issue(principal, principal_type, expires_delta)


def decode_token(token: str) -> TokenClaims:
    """Verify a token with the application's codec."""
    return token_codec.verify(token)
