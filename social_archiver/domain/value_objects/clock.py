from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """시각을 UTC로 맞춘다. naive 값은 이미 UTC 기준으로 본다.

    폴더, 파일명, 프론트매터의 날짜가 모두 같은 달력을 쓰도록 하기 위함.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
