from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from app.core.context import ServiceContext
from app.models import user_model
from app.modules.plans.registry import Plan
from app.utils.auth import decode_user_id

# The tokenUrl should point to a generic token endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/user/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/user/token", auto_error=False)


def get_services(request: Request) -> ServiceContext:
    return request.app.state.services


async def get_db(services: ServiceContext = Depends(get_services)) -> AsyncGenerator[AsyncSession, None]:
    async with services.session_factory() as session:
        yield session

# --- User Authentication Dependencies ---

async def _load_user(token: str, services: ServiceContext, db: AsyncSession) -> Optional[user_model.Users]:
    user_id = decode_user_id(token, services.settings)
    if user_id is None:
        return None
    return await db.get(user_model.Users, user_id)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    services: ServiceContext = Depends(get_services),
    db: AsyncSession = Depends(get_db),
) -> user_model.Users:
    """
    Dependency to get the current user from a JWT token.
    """
    user = await _load_user(token, services, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_user(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    services: ServiceContext = Depends(get_services),
    db: AsyncSession = Depends(get_db),
) -> Optional[user_model.Users]:
    """
    Like `get_current_user`, but anonymous callers (no or invalid token) get None.
    """
    if not token:
        return None
    return await _load_user(token, services, db)


async def get_caller_plan(
    current_user: Optional[user_model.Users] = Depends(get_optional_user),
    services: ServiceContext = Depends(get_services),
    db: AsyncSession = Depends(get_db),
) -> Plan:
    return await services.subscriptions.resolve_plan(db, current_user)
