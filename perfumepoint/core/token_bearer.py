import jwt
from fastapi import Request
from fastapi.security import HTTPBearer
from fastapi.security.http import HTTPAuthorizationCredentials

from ..core.config import Config
from ..exceptions import AccessTokenRequiredException, InvalidTokenException


def decode_token(token: str) -> dict:
    """
    Decode and verify an access token signed with JWT_SECRET.

    Raises:
        InvalidTokenException: If the token is malformed, expired or badly signed.
    """
    try:
        return jwt.decode(token, Config.JWT_SECRET, algorithms=[Config.JWT_ALGORITHM])
    except jwt.PyJWTError:
        raise InvalidTokenException()


class AccessTokenBearer(HTTPBearer):
    """
    Reads the bearer token from the Authorization header and returns its
    decoded payload. Accounts are issued elsewhere; this service only
    verifies the tokens it receives.
    """

    def __init__(self, auto_error: bool = False):
        super().__init__(auto_error=auto_error)

    async def __call__(self, request: Request) -> dict:
        credentials: HTTPAuthorizationCredentials = await super().__call__(request)
        if credentials is None:
            raise AccessTokenRequiredException()

        token_data = decode_token(credentials.credentials)
        if "user" not in token_data:
            raise InvalidTokenException()

        return token_data
