"""Book catalog schemas."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

NO_COVER_IMAGE = (
    "data:image/svg+xml,%3Csvg xmlns='http://www.w3.org/2000/svg' width='400' "
    "height='600' viewBox='0 0 400 600'%3E%3Crect width='400' height='600' "
    "fill='%23f3f4f6'/%3E%3Ctext x='200' y='300' font-family='Arial, sans-serif' "
    "font-size='24' fill='%239ca3af' text-anchor='middle' dy='0.3em'%3ENo Cover"
    "%3C/text%3E%3C/svg%3E"
)


class Book(BaseModel):
    """A catalog record. Embedded in an order as an immutable snapshot."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = "Unknown Title"
    author: str = "Unknown Author"
    description: str = "No description available."
    genre: str = "contemporary"
    isbn: str = "N/A"
    cover_image: str = NO_COVER_IMAGE
    published_date: str = "Unknown"
    page_count: int = Field(default=0, ge=0)
    rating: float = Field(default=0.0, ge=0)


class BookGenre(BaseModel):
    id: str
    name: str
    description: str
    color: str


class BookList(BaseModel):
    data: List[Book] = Field(default_factory=list)


GENRES: list[BookGenre] = [
    BookGenre(id="romance", name="Romance", description="Love stories and romantic fiction", color="#f472b6"),
    BookGenre(id="mystery", name="Mystery", description="Suspenseful and intriguing stories", color="#6366f1"),
    BookGenre(id="fantasy", name="Fantasy", description="Magical worlds and adventures", color="#8b5cf6"),
    BookGenre(id="literary", name="Literary Fiction", description="Thought-provoking and artistic works", color="#10b981"),
    BookGenre(id="historical", name="Historical Fiction", description="Stories set in the past", color="#f59e0b"),
    BookGenre(id="thriller", name="Thriller", description="Fast-paced and exciting stories", color="#ef4444"),
    BookGenre(id="contemporary", name="Contemporary Fiction", description="Modern stories and characters", color="#06b6d4"),
    BookGenre(id="classics", name="Classics", description="Timeless literary works", color="#84cc16"),
]
