from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from typing import Any, Callable


class APIException(Exception):
    """ Base class for all exceptions in the Perfume Point API. """
    pass


class InvalidTokenException(APIException):
    """ Exception is thrown when user provided an expired invalid token. """
    pass


class AccessTokenRequiredException(APIException):
    """ Exception is raised when a request reaches a protected endpoint without an access token. """
    pass


class UserNotFoundException(APIException):
    """ Exception is thrown when the user referenced by a token is not found. """
    pass


class NotFoundException(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestException(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ForbiddenException(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InternalServerErrorException(HTTPException):
    def __init__(self, detail: str = "Something went wrong, please try again later"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def create_exception_handler(status_code: int, detail: Any) -> Callable[[Request, Exception], JSONResponse]:
    async def exception_handler(request: Request, exception: APIException):
        return JSONResponse(
            content={"detail": detail},
            status_code=status_code
        )

    return exception_handler
