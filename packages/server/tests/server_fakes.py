"""
Fake collaborators and sample data for server tests.
"""

from __future__ import annotations

from datetime import datetime, timezone

import httpx

from fabledrop_shared.schemas.books import Book

EMAIL = "reader@example.com"
OUTSIDER = "stranger@example.com"
GOOD_TOKEN = "ya29.good-token"
OUTSIDER_TOKEN = "ya29.outsider-token"

PROFILES = {
    GOOD_TOKEN: {"id": "1001", "email": EMAIL, "name": "Rita Reader", "picture": "https://img/rita.png"},
    OUTSIDER_TOKEN: {"id": "2002", "email": OUTSIDER, "name": "Sam Stranger"},
}


def make_book(book_id: str = "vol_1", title: str = "The Night Circus") -> Book:
    return Book(id=book_id, title=title, author="Erin Morgenstern", genre="fantasy", rating=4.2)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def userinfo_handler(request: httpx.Request) -> httpx.Response:
    token = request.headers.get("Authorization", "").removeprefix("Bearer ")
    profile = PROFILES.get(token)
    if profile is None:
        return httpx.Response(401, json={"error": "invalid_token"})
    return httpx.Response(200, json=profile)


def volume(volume_id: str, title: str, categories: list[str] | None = None, **info) -> dict:
    return {
        "id": volume_id,
        "volumeInfo": {
            "title": title,
            "authors": ["Jane Author"],
            "categories": categories or ["Fiction"],
            **info,
        },
    }


def books_handler(request: httpx.Request) -> httpx.Response:
    """Two volumes per query, ids derived from the query; queries containing 'fail' error out."""
    q = request.url.params.get("q", "")
    if "fail" in q:
        return httpx.Response(500, json={"error": "backend"})
    slug = q.replace(" ", "-").replace(":", "-")
    return httpx.Response(
        200,
        json={"items": [volume(f"{slug}-1", f"{q} one"), volume(f"{slug}-2", f"{q} two")]},
    )
