"""Auth session persistence over HTTP cookies.

Supabase Auth stores its session (and the PKCE code verifier) through a
key/value storage adapter. ``CookieStorage`` keeps those items in memory for
the lifetime of one request, seeded from the request cookies, and reports the
Set-Cookie headers needed to persist whatever changed.

All items are packed into one base64 JSON value; values larger than a single
cookie are split across ``<name>.0``, ``<name>.1``, ...
"""

import base64
import binascii
import json
import logging
from typing import Dict, List, Mapping, Optional, Set, Tuple

from starlette.responses import Response
from supabase_auth import AsyncSupportedStorage

from marketplace.config import settings

logger = logging.getLogger(__name__)

CHUNK_SIZE = 3000


def _encode(items: Dict[str, str]) -> str:
    raw = json.dumps(items, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _decode(value: str) -> Dict[str, str]:
    padded = value + "=" * (-len(value) % 4)
    try:
        items = json.loads(base64.urlsafe_b64decode(padded.encode()))
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Discarding unreadable auth cookie: {e}")
        return {}
    if not isinstance(items, dict):
        return {}
    return {str(k): str(v) for k, v in items.items()}


class CookieStorage(AsyncSupportedStorage):
    def __init__(self, cookie_name: str, items: Optional[Dict[str, str]] = None, loaded_names: Optional[Set[str]] = None):
        self.cookie_name = cookie_name
        self._items: Dict[str, str] = dict(items or {})
        self._loaded_names: Set[str] = set(loaded_names or ())
        self.dirty = False

    @classmethod
    def from_cookies(cls, cookies: Mapping[str, str], cookie_name: Optional[str] = None) -> "CookieStorage":
        name = cookie_name or settings.auth_cookie_name
        if name in cookies:
            return cls(name, _decode(cookies[name]), {name})
        parts: List[str] = []
        loaded: Set[str] = set()
        index = 0
        while f"{name}.{index}" in cookies:
            chunk_name = f"{name}.{index}"
            parts.append(cookies[chunk_name])
            loaded.add(chunk_name)
            index += 1
        items = _decode("".join(parts)) if parts else {}
        return cls(name, items, loaded)

    # -------------------------------------------------------------------------
    # AsyncSupportedStorage
    # -------------------------------------------------------------------------

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        if self._items.get(key) != value:
            self._items[key] = value
            self.dirty = True

    async def remove_item(self, key: str) -> None:
        if key in self._items:
            del self._items[key]
            self.dirty = True

    def clear(self) -> None:
        """Drop every stored item; the cookies are deleted on the response."""
        if self._items:
            self._items.clear()
            self.dirty = True

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    @property
    def items(self) -> Dict[str, str]:
        return dict(self._items)

    def cookie_updates(self) -> Dict[str, Optional[str]]:
        """Cookie name -> new value, or None for cookies to delete."""
        if not self.dirty:
            return {}
        updates: Dict[str, Optional[str]] = {}
        if self._items:
            encoded = _encode(self._items)
            if len(encoded) <= CHUNK_SIZE:
                updates[self.cookie_name] = encoded
            else:
                chunks = [encoded[i:i + CHUNK_SIZE] for i in range(0, len(encoded), CHUNK_SIZE)]
                for index, chunk in enumerate(chunks):
                    updates[f"{self.cookie_name}.{index}"] = chunk
        for name in self._loaded_names:
            updates.setdefault(name, None)
        return updates

    def set_cookie_headers(self) -> List[Tuple[bytes, bytes]]:
        response = Response()
        for name, value in self.cookie_updates().items():
            if value is None:
                response.delete_cookie(name, path="/", secure=settings.cookie_secure, httponly=True, samesite="lax")
            else:
                response.set_cookie(
                    name,
                    value,
                    max_age=settings.cookie_max_age,
                    path="/",
                    secure=settings.cookie_secure,
                    httponly=True,
                    samesite="lax",
                )
        return [(k, v) for k, v in response.raw_headers if k == b"set-cookie"]
