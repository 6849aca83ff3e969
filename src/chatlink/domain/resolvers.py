"""Resolve invite and template codes from bare codes or share URLs."""

from __future__ import annotations

import re

_INVITE = re.compile(
    r"(?:https?://)?(?:www\.)?(?:discord(?:app)?\.com/invite|discord\.gg)/([\w-]{2,255})",
    re.IGNORECASE,
)
_TEMPLATE = re.compile(
    r"(?:https?://)?(?:www\.)?(?:discord(?:app)?\.com/template|discord\.new)/([\w-]{2,255})",
    re.IGNORECASE,
)
_BARE_CODE = re.compile(r"[\w-]{2,255}")


def resolve_invite_code(value: str) -> str:
    """Return the invite code for ``value`` (a code or an invite URL)."""
    return _resolve(value, _INVITE, kind="invite")


def resolve_template_code(value: str) -> str:
    """Return the guild template code for ``value`` (a code or a template URL)."""
    return _resolve(value, _TEMPLATE, kind="template")


def _resolve(value: str, pattern: re.Pattern[str], *, kind: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{kind} must be a non-empty string")
    candidate = value.strip()
    match = pattern.search(candidate)
    if match is not None:
        return match.group(1)
    if _BARE_CODE.fullmatch(candidate):
        return candidate
    raise ValueError(f"could not resolve a {kind} code from {value!r}")


__all__ = ["resolve_invite_code", "resolve_template_code"]
