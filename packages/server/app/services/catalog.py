"""
Book catalog backed by the Google Books volumes API.

Handles:
- Conversion of volume records into Book snapshots (cover, ISBN, genre)
- Per-query caching with a TTL and a bound on the number of entries
- Genre, popular and curated selections

Search failures are logged and yield an empty list; the catalog is never
allowed to break the ordering flow.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections import OrderedDict
from typing import Any, Optional

import httpx
import structlog

from fabledrop_shared.schemas.books import NO_COVER_IMAGE, Book

log = structlog.get_logger()

DEFAULT_RATING = 4.0

GENRE_QUERIES = {
    "romance": "subject:romance fiction",
    "mystery": "subject:mystery fiction",
    "fantasy": "subject:fantasy fiction",
    "literary": "subject:literary fiction",
    "historical": "subject:historical fiction",
    "thriller": "subject:thriller fiction",
    "contemporary": "subject:contemporary fiction",
    "classics": "subject:classics literature",
}

POPULAR_QUERIES = [
    "bestseller fiction",
    "award winning fiction",
    "popular fiction",
    "goodreads choice fiction",
]

CURATED_GENRES = ["romance", "mystery", "fantasy", "literary", "contemporary"]
CURATED_PER_GENRE = 8
CURATED_TOTAL = 40


def map_categories_to_genre(categories: list[str]) -> str:
    text = " ".join(categories).lower()

    if "romance" in text:
        return "romance"
    if "mystery" in text or "thriller" in text or "crime" in text:
        return "mystery"
    if "fantasy" in text or "magic" in text or "supernatural" in text:
        return "fantasy"
    if "fiction" in text and ("literary" in text or "contemporary" in text):
        return "literary"
    if "historical" in text:
        return "historical"
    if "suspense" in text:
        return "thriller"
    if "fiction" in text:
        return "contemporary"
    if "classic" in text:
        return "classics"
    return "contemporary"


def volume_to_book(item: dict[str, Any]) -> Book:
    """Convert a Google Books volume into a Book, filling gaps with defaults."""
    info = item.get("volumeInfo") or {}
    images = info.get("imageLinks") or {}
    cover = (
        images.get("large")
        or images.get("medium")
        or images.get("small")
        or images.get("thumbnail")
        or NO_COVER_IMAGE
    )

    isbn = "N/A"
    for ident in info.get("industryIdentifiers") or []:
        if ident.get("type") in ("ISBN_13", "ISBN_10") and ident.get("identifier"):
            isbn = ident["identifier"]
            break

    return Book(
        id=item["id"],
        title=info.get("title") or "Unknown Title",
        author=", ".join(info.get("authors") or []) or "Unknown Author",
        description=info.get("description") or "No description available.",
        genre=map_categories_to_genre(info.get("categories") or []),
        isbn=isbn,
        cover_image=cover,
        published_date=info.get("publishedDate") or "Unknown",
        page_count=info.get("pageCount") or 0,
        rating=info.get("averageRating") or DEFAULT_RATING,
    )


class CatalogClient:
    """Google Books search client with an in-process result cache."""

    def __init__(
        self,
        base_url: str = "https://www.googleapis.com/books/v1",
        api_key: str = "",
        request_timeout: int = 15,
        cache_ttl_seconds: int = 24 * 60 * 60,
        cache_max_entries: int = 256,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: Optional[random.Random] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._request_timeout = request_timeout
        self._cache_ttl = cache_ttl_seconds
        self._cache_max_entries = cache_max_entries
        self._transport = transport
        self._rng = rng or random.Random()
        self._client: httpx.AsyncClient | None = None
        # Insertion order is expiry order: every write goes to the end.
        self._cache: OrderedDict[tuple[str, int], tuple[float, list[Book]]] = OrderedDict()

    async def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._request_timeout),
            transport=self._transport,
        )
        if not self._api_key:
            log.info("catalog.no_api_key")

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    def _store(self, key: tuple[str, int], books: list[Book]) -> None:
        now = time.monotonic()
        self._cache.pop(key, None)
        while self._cache:
            oldest_key, (stored_at, _) = next(iter(self._cache.items()))
            if now - stored_at < self._cache_ttl and len(self._cache) < self._cache_max_entries:
                break
            del self._cache[oldest_key]
        if self._cache_max_entries > 0:
            self._cache[key] = (now, books)

    # --- Search ---

    async def search_books(self, query: str, max_results: int = 40) -> list[Book]:
        assert self._client, "catalog is not open"
        key = (query, max_results)
        cached = self._cache.get(key)
        if cached and time.monotonic() - cached[0] < self._cache_ttl:
            return list(cached[1])

        params: dict[str, Any] = {
            "q": query,
            "maxResults": max_results,
            "printType": "books",
            "langRestrict": "en",
        }
        if self._api_key:
            params["key"] = self._api_key

        try:
            resp = await self._client.get(f"{self._base_url}/volumes", params=params)
            resp.raise_for_status()
            items = resp.json().get("items") or []
        except httpx.HTTPStatusError as exc:
            log.warning("catalog.search_failed", query=query, status=exc.response.status_code)
            return []
        except httpx.HTTPError as exc:
            log.warning("catalog.unreachable", query=query, error=str(exc))
            return []
        except ValueError:
            log.warning("catalog.invalid_response", query=query)
            return []

        books = []
        for item in items:
            if not item.get("id"):
                continue
            books.append(volume_to_book(item))
        self._store(key, books)
        return list(books)

    async def books_by_genre(self, genre: str, max_results: int = 20) -> list[Book]:
        query = GENRE_QUERIES.get(genre, "subject:fiction")
        return await self.search_books(query, max_results)

    async def popular_books(self, max_results: int = 40) -> list[Book]:
        per_query = max(max_results // len(POPULAR_QUERIES), 1)
        seen: set[tuple[str, str]] = set()
        books: list[Book] = []
        for query in POPULAR_QUERIES:
            for book in await self.search_books(query, per_query):
                key = (book.title.lower(), book.author.lower())
                if key in seen:
                    continue
                seen.add(key)
                books.append(book)
        return books[:max_results]

    async def curated_books(self) -> list[Book]:
        """A shuffled mix across several genres, de-duplicated by id."""
        results = await asyncio.gather(
            *(self.books_by_genre(g, CURATED_PER_GENRE) for g in CURATED_GENRES)
        )
        seen: set[str] = set()
        books: list[Book] = []
        for batch in results:
            for book in batch:
                if book.id in seen:
                    continue
                seen.add(book.id)
                books.append(book)
        self._rng.shuffle(books)
        return books[:CURATED_TOTAL]
