from __future__ import annotations

import re

# "1.2K", "3M", "12.5 k reactions": 숫자 바로 뒤(공백 허용)의 K/M 접미사
_COMPACT = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*([kKmM])(?![A-Za-z])")

_MULTIPLIERS = {"k": 1_000, "m": 1_000_000}


def parse_engagement_number(text: str | None) -> int:
    """축약 표기된 참여 지표를 정수로 변환한다.

    "1.2K" → 1200, "3M" → 3000000, "1,234 comments" → 1234.
    파싱할 수 없거나 빈 문자열이면 0.
    """
    if not text:
        return 0

    cleaned = text.strip()
    match = _COMPACT.search(cleaned)
    if match:
        try:
            mantissa = float(match.group(1).replace(",", ""))
        except ValueError:
            return 0
        return int(round(mantissa * _MULTIPLIERS[match.group(2).lower()]))

    digits = re.sub(r"\D", "", cleaned)
    return int(digits) if digits else 0


def format_engagement_number(value: int) -> str:
    """1,000 / 1,000,000 기준으로 K/M 접미사를 붙여 소수점 한 자리로 축약한다.

    반올림한 값으로 단위를 고르므로 999,999는 "1000.0K"가 아니라 "1.0M"이 된다.
    """
    if value < 1_000:
        return str(value)
    thousands = f"{value / 1_000:.1f}"
    if value < 1_000_000 and float(thousands) < 1_000:
        return f"{thousands}K"
    return f"{value / 1_000_000:.1f}M"
