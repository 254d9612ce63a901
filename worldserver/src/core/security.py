from passlib.context import CryptContext
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from worldserver.src.core.config import settings
from worldserver.src.core.logging_config import get_logger

logger = get_logger(__name__)

# Account passwords; cost comes from BCRYPT_ROUNDS
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Empty input and unreadable stored hashes never match."""
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        # passlib raises UnknownHashError for a hash it cannot identify
        logger.error("Stored password hash is unusable", extra={"error": str(e)})
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# Session Token Handling
def create_session_token(
    account_id: int, session_id: str, expires_delta: Optional[timedelta] = None
) -> str:
    """Creates a signed session token bound to an account session row."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.SESSION_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"sub": str(account_id), "sid": session_id, "exp": expire}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decodes a session token.

    Returns the claims with ``sub`` converted to an int account id, or None
    when the token is malformed, expired or lacks the expected claims.
    """
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    session_id = payload.get("sid")
    if subject is None or session_id is None:
        return None
    try:
        payload["sub"] = int(subject)
    except (TypeError, ValueError):
        return None
    return payload
