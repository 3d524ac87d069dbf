"""API Dependencies - Authentication"""
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from uuid import UUID
from typing import Optional

from domain.auth import User, UserInDB
from infrastructure.config import HTTP_ADMIN_USERNAME, HTTP_ADMIN_PASSWORD
from infrastructure.security import SECRET_KEY, ALGORITHM, hash_password_async
from infrastructure.repositories.in_memory_repositories import (
    InMemoryUserRepository, InMemoryEligibilityRepository
)
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Identity store shared by the HTTP routes
user_repo = InMemoryUserRepository()
eligibility_repo = InMemoryEligibilityRepository()

# Fixed UUID for the default operator account
DEFAULT_ADMIN_ID = UUID("123e4567-e89b-12d3-a456-426614174000")


async def _seed_default_admin() -> UserInDB:
    """Create the default HTTP operator on first access"""
    admin = UserInDB(
        user_id=DEFAULT_ADMIN_ID,
        username=HTTP_ADMIN_USERNAME,
        email="admin@example.com",
        full_name="Admin User",
        is_admin=True,
        hashed_password=await hash_password_async(HTTP_ADMIN_PASSWORD),
    )
    return await user_repo.save(admin)


async def get_user(username: str) -> Optional[UserInDB]:
    user = await user_repo.find_by_username(username)
    if user is None and username == HTTP_ADMIN_USERNAME:
        user = await _seed_default_admin()
    return user


async def get_current_user(token: str = Depends(oauth2_scheme)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError:
        raise credentials_exception

    user = await get_user(token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)):
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


async def get_current_admin_user(current_user: User = Depends(get_current_active_user)):
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return current_user
