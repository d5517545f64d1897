from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import AsyncGenerator, List

from ..enums import UserRole
from ..exceptions import ForbiddenException, UserNotFoundException
from ..core.token_bearer import AccessTokenBearer
from ..db.database import AsyncSessionLocal
from ..models.user import User


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Asynchronous dependency that provides a database session for FastAPI routes.

    Yields:
        AsyncSession: An instance of the asynchronous database session.

    Usage:
        Use as a dependency in FastAPI endpoints to access the database session.
        The session is automatically closed after the request is processed.
    """

    async with AsyncSessionLocal() as db:
        yield db


async def get_current_user(
    token: dict = Depends(AccessTokenBearer()),
    session: AsyncSession = Depends(get_db),
) -> User:
    """
    Retrieve the current authenticated user based on the provided access token.

    Args:
        token (dict): A dictionary containing user information extracted from the access token.
        session (AsyncSession): The asynchronous database session dependency.

    Returns:
        User: The user object corresponding to the id (or email) found in the token.

    Raises:
        UserNotFoundException: If no user matches the token.
    """
    token_user = token["user"]

    if token_user.get("id") is not None:
        user = await session.get(User, token_user["id"])
    else:
        result = await session.execute(select(User).where(User.email == token_user.get("email")))
        user = result.scalars().first()

    if not user:
        raise UserNotFoundException()

    return user


class RoleChecker:
    """
    Dependency class for FastAPI route protection using Role Based Access Control (RBAC).

    Args:
        allowed_roles (List[UserRole]): Roles that are allowed to access the endpoint.
    """

    def __init__(self, allowed_roles: List[UserRole]):
        self.allowed_roles = allowed_roles


    async def __call__(self, current_user: User = Depends(get_current_user)) -> User:
        if current_user.role in self.allowed_roles:
            return current_user

        raise ForbiddenException(detail="You don't have the required role to access this endpoint!")


def get_current_manager(user: User = Depends(get_current_user)) -> User:
    if not user.is_manager:
        raise ForbiddenException(detail="Only managers can access this resource!")

    return user
