"""Gift code extraction from free text."""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache

from chatlink.clients import GIFT_CODES


@lru_cache(maxsize=8)
def _pattern(hosts: tuple[str, ...]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(host.strip("/")) for host in hosts)
    return re.compile(rf"(?:{alternatives})/(\w{{16,25}})\b", re.IGNORECASE)


def extract_gift_codes(text: str, hosts: Iterable[str] = GIFT_CODES.hosts) -> list[str]:
    """Return the gift codes embedded in ``text``, deduplicated in first-seen order."""
    codes: dict[str, None] = {}
    for match in _pattern(tuple(hosts)).finditer(text):
        codes.setdefault(match.group(1), None)
    return list(codes)


__all__ = ["extract_gift_codes"]
