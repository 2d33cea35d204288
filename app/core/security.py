from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from app.core.config import settings

ALGORITHM = "HS256"


def _create_token(user_id: int, email: str, minutes: int, token_type: str) -> str:
    payload = {
        "user_id": user_id,
        "email": email,
        "exp": datetime.utcnow() + timedelta(minutes=minutes),
        "type": token_type,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def create_access_token(user_id: int, email: str) -> str:
    return _create_token(user_id, email, settings.JWT_EXPIRE_MIN, "access")


def create_refresh_token(user_id: int, email: str) -> str:
    return _create_token(user_id, email, settings.JWT_REFRESH_EXPIRE_MIN, "refresh")


def verify_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        return None


def decode_token(token: str) -> Optional[int]:
    """Retourne le user_id d'un access token valide, sinon None"""
    payload = verify_token(token)
    if payload is None or payload.get("type") != "access":
        return None
    return payload.get("user_id")
