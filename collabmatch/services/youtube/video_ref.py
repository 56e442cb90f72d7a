"""Extraction of YouTube video ids from user-supplied stream links."""

import re

# YouTube video ids are always 11 characters
VIDEO_ID_LENGTH = 11

_VIDEO_ID_PATTERNS = (
    # youtube.com/watch?v=VIDEO_ID
    re.compile(r"youtube\.com/watch\?v=([^&\n?#]+)"),
    # youtu.be/VIDEO_ID (with or without query parameters)
    re.compile(r"youtu\.be/([^&\n?#]+)"),
    # youtube.com/embed/VIDEO_ID
    re.compile(r"youtube\.com/embed/([^&\n?#]+)"),
    # youtube.com/live/VIDEO_ID
    re.compile(r"youtube\.com/live/([^&\n?#]+)"),
)


def extract_video_id(url: str | None) -> str | None:
    """Return the video id referenced by `url`, or None if no known link shape matches.

    Tokens longer than the platform id length are truncated; shorter tokens are
    returned as captured.
    """
    if not url:
        return None

    for pattern in _VIDEO_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            video_id = match.group(1)
            if len(video_id) >= VIDEO_ID_LENGTH:
                return video_id[:VIDEO_ID_LENGTH]
            return video_id

    return None


def validate_url(url: str | None) -> bool:
    return extract_video_id(url) is not None
