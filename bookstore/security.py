"""
Password hashing and access tokens.

Tokens are HS256 JWTs whose ``sub`` claim is the user id.
"""

from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from bookstore.exceptions import UnauthorizedError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    """Hash a plain password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against its stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    subject: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed, time-limited token.

    Args:
        subject: User id stored in the ``sub`` claim
        secret_key: Signing secret
        algorithm: JWT algorithm
        expires_delta: Lifetime, one hour when omitted

    Returns:
        Encoded JWT
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(hours=1))
    to_encode = {"sub": subject, "exp": expire}
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_access_token(token: str, secret_key: str, algorithm: str = "HS256") -> str:
    """
    Verify a token's signature and expiry and return its subject.

    Raises:
        UnauthorizedError: If the token is invalid, expired or has no subject.
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")

    subject = payload.get("sub")
    if not subject:
        raise UnauthorizedError("Invalid or expired token")
    return subject
