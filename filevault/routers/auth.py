from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..deps import get_accounts, get_token_service
from ..errors import Unauthenticated
from ..schemas import ApiResponse, LoginRequest, RegisterRequest, TokenResponse
from ..security import TokenService
from ..services.accounts import AccountStore

log = logging.getLogger(__name__)

router = APIRouter(prefix='/api/auth', tags=['auth'])


@router.post('/login', response_model=TokenResponse)
def login(
    payload: LoginRequest,
    accounts: AccountStore = Depends(get_accounts),
    tokens: TokenService = Depends(get_token_service),
):
    user = accounts.verify_credentials(payload.username, payload.password)
    if not user:
        log.warning('Login failed for %s', payload.username)
        raise Unauthenticated('Invalid credentials')

    log.info('%s logged in', user.username)
    return TokenResponse(token=tokens.issue(user.username, user.is_admin), is_admin=user.is_admin)


@router.post('/register')
def register_first_admin(payload: RegisterRequest, accounts: AccountStore = Depends(get_accounts)):
    if accounts.users_exist():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Registration is closed')

    if not accounts.create_account(payload.username, payload.password, is_admin=True):
        raise HTTPException(status_code=400, detail='User exists')
    return ApiResponse(ok=True, message='Admin account created')
