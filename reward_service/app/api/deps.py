"""공통 API 의존성."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from pymongo.database import Database

from common.mongo.client import get_database

from ..models.account import Account
from ..repositories.account_repository import AccountRepository
from ..repositories.interfaces import AccountRepositoryInterface


def get_account_repository(
    db: Database = Depends(get_database),
) -> AccountRepositoryInterface:
    """FastAPI DI용 AccountRepository 팩토리."""
    return AccountRepository(db)


def get_current_account(
    x_user_id: Annotated[str | None, Header()] = None,
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
) -> Account:
    """Gateway 가 전달한 X-User-Id 로 요청자 계정을 조회한다.

    역할은 저장된 계정의 role 을 신뢰한다 (헤더로 받지 않는다).
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="missing X-User-Id header",
        )
    account = account_repo.find_by_id(x_user_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unknown user",
        )
    return account


CurrentAccount = Annotated[Account, Depends(get_current_account)]
