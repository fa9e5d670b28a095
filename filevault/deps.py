from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .db import get_db
from .errors import Unauthenticated, Unauthorized
from .security import Principal, TokenService
from .services.accounts import AccountStore
from .services.file_ops import FileOps

log = logging.getLogger(__name__)


def extract_bearer(request: Request) -> Optional[str]:
    auth = request.headers.get('Authorization', '')
    if auth.startswith('Bearer '):
        token = auth.split(' ', 1)[1].strip()
        return token or None
    return None


def get_accounts(request: Request, db: Session = Depends(get_db)) -> AccountStore:
    return AccountStore(db, request.app.state.file_ops.sandbox.base_dir)


def get_principal(request: Request, accounts: AccountStore = Depends(get_accounts)) -> Principal:
    principal = getattr(request.state, 'principal', None)
    if principal is None:
        raise Unauthenticated('Missing token')

    user = accounts.find(principal.username)
    if user is None:
        log.warning('Token for deleted account %s rejected', principal.username)
        raise Unauthenticated('Account no longer exists')
    # a demoted account loses admin rights before its token expires
    return Principal(username=user.username, is_admin=principal.is_admin and user.is_admin)


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise Unauthorized('Admin role required')
    return principal


def get_file_ops(request: Request) -> FileOps:
    return request.app.state.file_ops


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service
