from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Optional

from social_archiver.domain.value_objects.clock import utc_now

# 대소문자 구분: m = 분, M = 월
_RELATIVE = re.compile(r"(\d+)([smhdwMy])")

_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
    "M": timedelta(days=30),
    "y": timedelta(days=365),
}


def parse_relative_timestamp(raw: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """"2h", "3w" 같은 상대 시각을 절대 시각으로 변환한다. 일치하지 않으면 None."""
    if not raw:
        return None

    match = _RELATIVE.search(raw)
    if not match:
        return None

    base = now or utc_now()
    return base - int(match.group(1)) * _UNITS[match.group(2)]
