import hashlib
import re
import unicodedata


def compute_content_hash(text: str) -> str:
    """요소 텍스트의 정규화된 SHA-256 해시를 계산한다.

    정규화: 소문자, 공백 통일, URL 제거, 유니코드 정규화.
    id 속성이 없는 게시물도 스냅샷이 바뀌어도 같은 식별자를 갖도록 한다.
    """
    normalized = text.lower()
    normalized = re.sub(r"https?://\S+", "", normalized)
    normalized = re.sub(r"\s+", " ", normalized).strip()
    normalized = unicodedata.normalize("NFC", normalized)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()
