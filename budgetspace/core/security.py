import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from budgetspace.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ─── Password hashing ──────────────────────────────────
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ─── Signed sessions ───────────────────────────────────
@dataclass(frozen=True)
class Session:
    """Identity carried by the session cookie. Passed explicitly via request deps."""
    user_id: uuid.UUID
    email: str
    name: str
    jti: str | None = None
    expires_at: datetime | None = None


def sign_session(session: Session, expires_delta: timedelta | None = None) -> str:
    """HMAC-sign a session with the server secret (HS256)."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.session_expire_days)
    )
    claims = {
        "sub": str(session.user_id),
        "email": session.email,
        "name": session.name,
        "jti": session.jti or uuid.uuid4().hex,
        "exp": expire,
        "type": "session",
    }
    return jwt.encode(claims, settings.api_secret_key, algorithm=settings.algorithm)


def verify_session(token: str) -> Session | None:
    """Return the session if the signature, expiry and claims check out, else None."""
    try:
        claims = jwt.decode(token, settings.api_secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if claims.get("type") != "session":
        return None
    try:
        user_id = uuid.UUID(claims["sub"])
        exp = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
    except (KeyError, TypeError, ValueError):
        return None

    return Session(
        user_id=user_id,
        email=claims.get("email", ""),
        name=claims.get("name", ""),
        jti=claims.get("jti"),
        expires_at=exp,
    )
