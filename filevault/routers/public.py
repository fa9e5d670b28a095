from __future__ import annotations

from fastapi import APIRouter, Depends

from ..deps import get_accounts
from ..services.accounts import AccountStore

router = APIRouter(prefix='/api/public', tags=['public'])


@router.get('/users-exist')
def users_exist(accounts: AccountStore = Depends(get_accounts)) -> bool:
    return accounts.users_exist()
