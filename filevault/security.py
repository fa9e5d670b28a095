from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from secrets import token_urlsafe
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

log = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=['bcrypt'], deprecated='auto')


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


@dataclass(frozen=True)
class Principal:
    username: str
    is_admin: bool = False


class TokenService:
    """Issues and validates the signed, time-bound bearer tokens.

    The signing key is fixed for the lifetime of the instance. When no secret
    is configured a random one is generated, so tokens stop validating after a
    restart.
    """

    def __init__(self, secret: Optional[str] = None, algorithm: str = 'HS256', expire_minutes: int = 1440):
        if not secret:
            log.warning('No JWT secret configured, generated an ephemeral signing key')
            secret = token_urlsafe(64)
        self._secret = secret
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def issue(self, username: str, is_admin: bool) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            'sub': username,
            'isAdmin': bool(is_admin),
            'iat': now,
            'exp': now + timedelta(minutes=self.expire_minutes),
        }
        log.debug('Issuing token for %s (admin=%s)', username, is_admin)
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def validate(self, token: str) -> Optional[Principal]:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except (JWTError, ValueError) as exc:
            log.warning('Token validation failed: %s', exc)
            return None

        username = payload.get('sub')
        if not isinstance(username, str) or not username:
            log.warning('Token validation failed: missing subject')
            return None
        return Principal(username=username, is_admin=payload.get('isAdmin') is True)
