"""
naming
------

리소스 이름 생성. Azure 웹앱 이름은 전역(*.azurewebsites.net)에서 유일해야 하므로
매 실행마다 랜덤 접미사를 붙인다.
"""

from __future__ import annotations

import random
import string
from typing import Iterable, List, Optional


_ALPHABET = string.ascii_lowercase + string.digits

# 웹앱 이름 최대 길이
MAX_SITE_NAME_LENGTH = 60


def random_name(prefix: str, length: int = 16, *, rng: Optional[random.Random] = None) -> str:
    """
    prefix 뒤에 랜덤 문자를 붙여 총 length 길이의 이름을 만든다.
    prefix 가 length 보다 길면 최소 4자의 접미사를 보장한다.
    """
    r = rng or random.SystemRandom()
    suffix_len = max(length - len(prefix), 4)
    return prefix + "".join(r.choice(_ALPHABET) for _ in range(suffix_len))


def generate_site_names(prefix: str, count: int, *, rng: Optional[random.Random] = None) -> List[str]:
    """webapp1-xxxx, webapp2-xxxx ... 형태로 서로 다른 이름 count 개를 생성한다."""
    names: List[str] = []
    seen: set[str] = set()
    for idx in range(1, count + 1):
        while True:
            name = random_name(f"{prefix}{idx}-", rng=rng)[:MAX_SITE_NAME_LENGTH]
            if name not in seen:
                break
        seen.add(name)
        names.append(name)
    return names


def find_duplicates(names: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    dups: List[str] = []
    for n in names:
        key = n.lower()
        if key in seen and n not in dups:
            dups.append(n)
        seen.add(key)
    return dups
