"""Port describing the REST dispatch contract."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from chatlink.json_types import JsonValue

QueryParams = Mapping[str, str | int | float | bool | None]


class RestPort(Protocol):
    """Generic authenticated/unauthenticated request dispatch."""

    async def post(
        self,
        path: str,
        body: Mapping[str, JsonValue] | None = None,
        *,
        auth: bool = True,
        query: QueryParams | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> JsonValue:
        """POST ``body`` as JSON and return the decoded response (``None`` when empty)."""

    async def get(
        self,
        path: str,
        query: QueryParams | None = None,
        *,
        auth: bool = True,
    ) -> JsonValue:
        """GET ``path`` and return the decoded response."""

    def set_token(self, token: str | None) -> None:
        """Set the credential used for ``auth=True`` requests."""

    async def aclose(self) -> None:
        """Release any client-side resources."""


__all__ = ["QueryParams", "RestPort"]
