#!/usr/bin/env python3
"""Example: Quickstart — kv-cookie-sessions

Minimal working example: resolve a session from a request, store a value,
save it, and resume it on the next request from the returned cookie.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install kv-cookie-sessions
"""
from __future__ import annotations

from typing import Any

import kv_cookie_sessions
from kv_cookie_sessions import InMemoryStore, SessionManager, generate_random_key


class Request:
    def __init__(self, cookies: dict[str, str] | None = None) -> None:
        self.cookies = cookies or {}


class Response:
    def __init__(self) -> None:
        self.cookies: dict[str, str] = {}

    def set_cookie(self, key: str, value: str = "", **kwargs: Any) -> None:
        self.cookies[key] = value


def main() -> None:
    print(f"kv-cookie-sessions version: {kv_cookie_sessions.__version__}")

    # Step 1: One manager per process, shared by every request
    store = InMemoryStore()
    manager = SessionManager(store, generate_random_key(32), generate_random_key(32))

    # Step 2: First request has no cookie, so the session is new
    first_response = Response()
    session = manager.new(Request(), "hello")
    print(f"First request: is_new={session.is_new}")
    session.values["user"] = "ada"
    manager.save(Request(), first_response, session)
    print(f"Saved session; store now holds {len(store)} entry")

    # Step 3: Second request presents the cookie and gets the values back
    cookie = first_response.cookies["hello"]
    resumed = manager.new(Request({"hello": cookie}), "hello")
    print(f"Second request: is_new={resumed.is_new} values={resumed.values}")

    # Step 4: A max age of zero deletes the session and clears the cookie
    resumed.options.max_age = 0
    last_response = Response()
    manager.save(Request(), last_response, resumed)
    print(f"Deleted; cookie now {last_response.cookies['hello']!r}, store holds {len(store)}")


if __name__ == "__main__":
    main()
