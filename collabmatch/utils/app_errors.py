"""Application error type shared by the domain, service and API layers."""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class HttpStatusCode(IntEnum):
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    TOO_MANY_REQUESTS = 429
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503


class AppErrorCode(str, Enum):
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"
    E_INVALID_PARAMS = "E_INVALID_PARAMS"
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_UNAUTHORIZED = "E_UNAUTHORIZED"
    E_FORBIDDEN = "E_FORBIDDEN"
    E_RATE_LIMITED = "E_RATE_LIMITED"

    # Stream references
    E_INVALID_STREAM_LINK = "E_INVALID_STREAM_LINK"
    E_STREAM_NOT_WAITING = "E_STREAM_NOT_WAITING"
    E_STREAM_UNVERIFIABLE = "E_STREAM_UNVERIFIABLE"
    E_UPSTREAM_NOT_CONFIGURED = "E_UPSTREAM_NOT_CONFIGURED"

    # Collab lifecycle
    E_COLLAB_NOT_FOUND = "E_COLLAB_NOT_FOUND"
    E_COLLAB_NOT_OPEN = "E_COLLAB_NOT_OPEN"
    E_COLLAB_FULL = "E_COLLAB_FULL"
    E_SELF_MATCH = "E_SELF_MATCH"
    E_ALREADY_PARTNER = "E_ALREADY_PARTNER"
    E_DUPLICATE_STREAM = "E_DUPLICATE_STREAM"
    E_ACTIVE_COLLAB_EXISTS = "E_ACTIVE_COLLAB_EXISTS"
    E_COLLAB_VERSION_CONFLICT = "E_COLLAB_VERSION_CONFLICT"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Error raised for any rejected operation.

    The call site that raised the error is captured so the API error handler
    can log where a rejection originated without a full traceback.
    """

    def __init__(
        self,
        errcode: AppErrorCode | str,
        errmesg: str,
        status_code: HttpStatusCode | int = HttpStatusCode.BAD_REQUEST,
    ):
        super().__init__(errmesg)
        self.errcode = errcode.value if isinstance(errcode, AppErrorCode) else str(errcode)
        self.errmesg = errmesg
        self.status_code = int(status_code)
        self.erresid = uuid4().hex[:10]

        caller_frame = inspect.stack()[1]
        module = inspect.getmodule(caller_frame.frame)
        module_name = (
            module.__name__ if module and getattr(module, "__name__", None) else caller_frame.filename
        )
        self.caller_info = f"{module_name}:{caller_frame.function}:{caller_frame.lineno}"

    def __repr__(self) -> str:
        return f"AppError(errcode={self.errcode!r}, errmesg={self.errmesg!r}, status_code={self.status_code})"
