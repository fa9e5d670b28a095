from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_accounts, require_admin
from ..schemas import ApiResponse, PasswordChangeRequest, RoleUpdateRequest, UserCreate, UserOut
from ..security import Principal
from ..services.accounts import AccountStore

router = APIRouter(prefix='/api/admin/users', tags=['admin'], dependencies=[Depends(require_admin)])


@router.get('', response_model=list[UserOut])
def list_users(accounts: AccountStore = Depends(get_accounts)):
    return [UserOut.model_validate(user) for user in accounts.list_accounts()]


@router.post('', response_model=UserOut)
def create_user(payload: UserCreate, accounts: AccountStore = Depends(get_accounts)):
    user = accounts.create_account(payload.username, payload.password, payload.is_admin)
    if not user:
        raise HTTPException(status_code=400, detail='User exists')
    return UserOut.model_validate(user)


@router.delete('/{user_id}')
def delete_user(user_id: int, current: Principal = Depends(require_admin), accounts: AccountStore = Depends(get_accounts)):
    user = accounts.get(user_id)
    if user and user.username == current.username:
        raise HTTPException(status_code=400, detail='Cannot delete currently logged-in admin user')
    if not accounts.delete_account(user_id):
        raise HTTPException(status_code=404, detail='User not found')
    return ApiResponse(ok=True, message='User deleted')


@router.put('/{user_id}/password')
def change_password(
    user_id: int,
    payload: PasswordChangeRequest,
    accounts: AccountStore = Depends(get_accounts),
):
    if not accounts.change_password(user_id, payload.password):
        raise HTTPException(status_code=404, detail='User not found')
    return ApiResponse(ok=True, message='Password changed')


@router.put('/{user_id}/role')
def update_role(
    user_id: int,
    payload: RoleUpdateRequest,
    accounts: AccountStore = Depends(get_accounts),
):
    if not accounts.set_admin_flag(user_id, payload.is_admin):
        raise HTTPException(status_code=404, detail='User not found')
    return ApiResponse(ok=True, message='User role updated')
