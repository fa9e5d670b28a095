from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from ..models import User
from ..security import hash_password, verify_password

log = logging.getLogger(__name__)


class AccountStore:
    """User accounts backed by the SQL database.

    New accounts get their storage folder under ``base_dir`` right away;
    deleting an account leaves the folder in place.
    """

    def __init__(self, db: Session, base_dir: str | Path):
        self.db = db
        self.base_dir = Path(base_dir)

    def find(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def get(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def users_exist(self) -> bool:
        return self.db.query(User).first() is not None

    def list_accounts(self) -> list[User]:
        return self.db.query(User).order_by(User.id).all()

    def create_account(self, username: str, password: str, is_admin: bool = False) -> Optional[User]:
        if self.find(username):
            log.info('Create account failed: %s already exists', username)
            return None

        user = User(username=username, password_hash=hash_password(password), is_admin=is_admin)
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        log.info('Account %s created (admin=%s)', username, is_admin)

        folder = self.base_dir / username
        try:
            folder.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            log.warning('Could not create folder %s: %s', folder, exc)
        return user

    def verify_credentials(self, username: str, password: str) -> Optional[User]:
        user = self.find(username)
        if not user or not verify_password(password, user.password_hash):
            return None
        return user

    def delete_account(self, user_id: int) -> bool:
        user = self.get(user_id)
        if not user:
            log.warning('Delete account failed: id %s not found', user_id)
            return False
        username = user.username
        self.db.delete(user)
        self.db.commit()
        log.info('Account %s deleted', username)
        return True

    def set_admin_flag(self, user_id: int, is_admin: bool) -> bool:
        user = self.get(user_id)
        if not user:
            return False
        user.is_admin = is_admin
        self.db.commit()
        log.info('Account %s admin flag set to %s', user.username, is_admin)
        return True

    def change_password(self, user_id: int, password: str) -> bool:
        user = self.get(user_id)
        if not user:
            log.warning('Change password failed: id %s not found', user_id)
            return False
        user.password_hash = hash_password(password)
        self.db.commit()
        log.info('Password changed for %s', user.username)
        return True
