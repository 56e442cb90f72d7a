from typing import Annotated

from fastapi import Depends, Header
from loguru import logger
from pydantic import BaseModel

from collabmatch.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


class User(BaseModel):
    user_id: str


async def get_current_user(
    x_user_id: Annotated[str | None, Header(description="Authenticated user id set by the gateway")] = None,
) -> User:
    # The gateway verifies the session and forwards the user id
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AppError(
            errcode=AppErrorCode.E_UNAUTHORIZED,
            errmesg="Authentication required",
            status_code=HttpStatusCode.UNAUTHORIZED,
        )

    logger.debug("Authenticated user_id: {}", user_id)
    return User(user_id=user_id)


CurrentUser = Annotated[User, Depends(get_current_user)]
