# =============================================================================
# tests/test_cookie_storage.py - Cookie session storage Tests
# =============================================================================

import asyncio

from marketplace.database.cookie_storage import CHUNK_SIZE, CookieStorage

NAME = "sb-auth-token"


class TestCookieStorage:
    """Test cookie encoding, chunking and deletion."""

    def test_unchanged_storage_writes_nothing(self):
        storage = CookieStorage(NAME)
        assert storage.cookie_updates() == {}
        assert storage.set_cookie_headers() == []

    def test_items_survive_a_request_cycle(self):
        storage = CookieStorage(NAME)
        asyncio.run(storage.set_item("session", '{"user": "u1"}'))
        updates = storage.cookie_updates()
        assert list(updates) == [NAME]

        restored = CookieStorage.from_cookies(updates, NAME)
        assert asyncio.run(restored.get_item("session")) == '{"user": "u1"}'

    def test_large_values_are_chunked(self):
        storage = CookieStorage(NAME)
        asyncio.run(storage.set_item("session", "x" * (CHUNK_SIZE * 2)))
        updates = storage.cookie_updates()
        assert NAME not in updates
        assert f"{NAME}.0" in updates and f"{NAME}.1" in updates

        restored = CookieStorage.from_cookies(updates, NAME)
        assert asyncio.run(restored.get_item("session")) == "x" * (CHUNK_SIZE * 2)

    def test_shrinking_deletes_stale_chunks(self):
        big = CookieStorage(NAME)
        asyncio.run(big.set_item("session", "x" * (CHUNK_SIZE * 2)))
        restored = CookieStorage.from_cookies(big.cookie_updates(), NAME)
        asyncio.run(restored.set_item("session", "small"))
        updates = restored.cookie_updates()
        assert updates[NAME] is not None
        assert updates[f"{NAME}.0"] is None
        assert updates[f"{NAME}.1"] is None

    def test_removing_last_item_deletes_cookie(self):
        storage = CookieStorage(NAME)
        asyncio.run(storage.set_item("session", "v"))
        restored = CookieStorage.from_cookies(storage.cookie_updates(), NAME)
        asyncio.run(restored.remove_item("session"))
        assert restored.cookie_updates() == {NAME: None}

    def test_clear_deletes_cookie(self):
        storage = CookieStorage(NAME)
        asyncio.run(storage.set_item("session", "v"))
        restored = CookieStorage.from_cookies(storage.cookie_updates(), NAME)
        restored.clear()
        assert restored.cookie_updates() == {NAME: None}

    def test_garbage_cookie_is_ignored(self):
        storage = CookieStorage.from_cookies({NAME: "!!not-base64!!"}, NAME)
        assert storage.items == {}

    def test_set_cookie_headers_are_http_only(self):
        storage = CookieStorage(NAME)
        asyncio.run(storage.set_item("session", "v"))
        headers = storage.set_cookie_headers()
        assert len(headers) == 1
        name, value = headers[0]
        assert name == b"set-cookie"
        assert value.startswith(f"{NAME}=".encode())
        assert b"HttpOnly" in value
        assert b"SameSite=lax" in value
