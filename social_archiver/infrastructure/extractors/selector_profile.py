"""셀렉터 프로파일 로더.

플랫폼별 필드 셀렉터(selectors.yaml)를 읽어 soupsieve로 미리 컴파일한다.
필드 이름은 "author.name"처럼 점으로 구분하고, 값은 순서 있는 셀렉터 목록이다.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Optional

import soupsieve
import yaml
from bs4 import Tag

from social_archiver.domain.entities import Platform
from social_archiver.domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_PATH = Path(__file__).with_name("selectors.yaml")

REQUIRED_FIELDS = ("post_container", "author.name")


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, list[str]]:
    fields: dict[str, list[str]] = {}
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            fields.update(_flatten(value, f"{name}."))
        elif isinstance(value, str):
            fields[name] = [value]
        elif isinstance(value, list) and all(isinstance(v, str) for v in value):
            fields[name] = list(value)
        else:
            raise ConfigurationError(f"'{name}' 셀렉터는 문자열 또는 문자열 목록이어야 합니다")
    return fields


class PlatformSelectors:
    """한 플랫폼의 컴파일된 필드 셀렉터. 먼저 일치하는 셀렉터가 이긴다."""

    def __init__(self, platform: Platform, fields: dict[str, list[str]]):
        self.platform = platform
        self._raw: dict[str, tuple[str, ...]] = {k: tuple(v) for k, v in fields.items()}
        self._compiled: dict[str, tuple[soupsieve.SoupSieve, ...]] = {}

        for name, selectors in self._raw.items():
            compiled = []
            for selector in selectors:
                try:
                    compiled.append(soupsieve.compile(selector))
                except soupsieve.SelectorSyntaxError as e:
                    raise ConfigurationError(
                        f"[{platform.value}] '{name}' 셀렉터가 올바르지 않습니다: {selector!r}"
                    ) from e
            self._compiled[name] = tuple(compiled)

        missing = [f for f in REQUIRED_FIELDS if not self._compiled.get(f)]
        if missing:
            raise ConfigurationError(
                f"[{platform.value}] 필수 셀렉터 필드 누락: {', '.join(missing)}"
            )

    @property
    def fields(self) -> dict[str, tuple[str, ...]]:
        return dict(self._raw)

    def selectors(self, field: str) -> tuple[str, ...]:
        return self._raw.get(field, ())

    def matches(self, node: Tag, field: str) -> bool:
        return any(pattern.match(node) for pattern in self._compiled.get(field, ()))

    def query_one(
        self, root: Tag, field: str, accept: Optional[Callable[[Tag], bool]] = None
    ) -> Optional[Tag]:
        """목록 순서대로 셀렉터를 시도해 첫 일치 요소를 반환한다.

        accept가 주어지면 그 조건을 통과한 요소만 일치로 본다. 앞 셀렉터에
        통과하는 요소가 하나라도 있으면 뒤 셀렉터는 보지 않는다.
        """
        for pattern in self._compiled.get(field, ()):
            if accept is None:
                found = pattern.select_one(root)
                if found is not None:
                    return found
                continue
            for el in pattern.iselect(root):
                if accept(el):
                    return el
        return None

    def query_all(self, root: Tag, field: str) -> list[Tag]:
        """모든 셀렉터의 결과 합집합. 중복 없이 문서 순서로 반환."""
        matched: set[int] = set()
        for pattern in self._compiled.get(field, ()):
            matched.update(id(el) for el in pattern.select(root))
        if not matched:
            return []
        return [el for el in root.find_all(True) if id(el) in matched]

    def with_overrides(self, overrides: dict[str, list[str]]) -> "PlatformSelectors":
        fields = {k: list(v) for k, v in self._raw.items()}
        fields.update(overrides)
        return PlatformSelectors(self.platform, fields)


SelectorProfile = dict[Platform, PlatformSelectors]


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"셀렉터 프로파일 파싱 실패: {path}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"셀렉터 프로파일 최상위는 매핑이어야 합니다: {path}")
    return data


def _platform_key(key: str) -> Platform:
    try:
        return Platform(str(key).lower())
    except ValueError as e:
        raise ConfigurationError(f"알 수 없는 플랫폼: {key}") from e


def parse_selector_profile(data: dict[str, Any]) -> SelectorProfile:
    profile: SelectorProfile = {}
    for key, section in data.items():
        platform = _platform_key(key)
        if not isinstance(section, dict):
            raise ConfigurationError(f"[{platform.value}] 셀렉터 섹션은 매핑이어야 합니다")
        profile[platform] = PlatformSelectors(platform, _flatten(section))
    return profile


@lru_cache(maxsize=1)
def _default_profile() -> SelectorProfile:
    return parse_selector_profile(_read_yaml(DEFAULT_PROFILE_PATH))


def load_selector_profile(override_path: Optional[str] = None) -> SelectorProfile:
    """번들 프로파일을 로드하고, 사용자 파일이 있으면 필드 단위로 덮어쓴다."""
    profile = dict(_default_profile())
    if not override_path:
        return profile

    path = Path(override_path)
    if not path.exists():
        logger.warning(f"셀렉터 오버라이드 파일 없음, 기본 프로파일 사용: {path}")
        return profile

    for key, section in _read_yaml(path).items():
        platform = _platform_key(key)
        if not isinstance(section, dict):
            raise ConfigurationError(f"[{platform.value}] 셀렉터 섹션은 매핑이어야 합니다")
        overrides = _flatten(section)
        base = profile.get(platform)
        profile[platform] = (
            base.with_overrides(overrides) if base else PlatformSelectors(platform, overrides)
        )
        logger.info(f"[{platform.value}] 셀렉터 {len(overrides)}개 필드 오버라이드 적용")

    return profile
