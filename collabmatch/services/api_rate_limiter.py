from slowapi import Limiter
from slowapi.util import get_remote_address

from collabmatch.app_config import get_app_environ_config

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[get_app_environ_config().GLOBAL_API_RATE_LIMIT],
)


def create_collab_rate_limit():
    return limiter.limit(get_app_environ_config().CREATE_COLLAB_RATE_LIMIT)


def match_collab_rate_limit():
    return limiter.limit(get_app_environ_config().MATCH_COLLAB_RATE_LIMIT)


def stream_info_rate_limit():
    return limiter.limit(get_app_environ_config().STREAM_INFO_RATE_LIMIT)
