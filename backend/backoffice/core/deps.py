"""Dependency injection: identity, role enforcement, store and workflow wiring."""

from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.security import decode_access_token
from backoffice.db.base import get_db
from backoffice.repositories.base import BackOfficeStore
from backoffice.repositories.sql import SqlBackOfficeStore
from backoffice.schemas.auth import CurrentUser
from backoffice.services.invoice_workflow import InvoiceWorkflow

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """Decode JWT and return CurrentUser. Raises 401 on invalid/expired token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
        return CurrentUser(
            id=UUID(user_id),
            name=payload.get("name", ""),
            role=payload["role"],
        )
    except (JWTError, KeyError, ValueError):
        raise credentials_exception


def require_role(*allowed_roles: str):
    """Dependency factory: checks the user has one of the allowed roles."""

    async def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{user.role.value}' not allowed. Required: {', '.join(allowed_roles)}",
            )
        return user

    return checker


async def get_store(db: AsyncSession = Depends(get_db)) -> BackOfficeStore:
    return SqlBackOfficeStore(db)


async def get_workflow(store: BackOfficeStore = Depends(get_store)) -> InvoiceWorkflow:
    return InvoiceWorkflow(store)
