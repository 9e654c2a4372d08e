"""
Catalog endpoints backed by the Google Books client.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_catalog
from app.core.auth import get_current_user
from app.services.catalog import CatalogClient
from fabledrop_shared.schemas.books import GENRES, BookGenre, BookList
from fabledrop_shared.schemas.users import UserProfile

router = APIRouter()


@router.get("", response_model=BookList)
async def list_books(
    q: Optional[str] = Query(None, min_length=1),
    genre: Optional[str] = None,
    max_results: int = Query(20, ge=1, le=40),
    user: UserProfile = Depends(get_current_user),
    catalog: CatalogClient = Depends(get_catalog),
):
    """Search by `q`, else browse `genre`, else the popular list."""
    if q:
        books = await catalog.search_books(q, max_results)
    elif genre:
        books = await catalog.books_by_genre(genre, max_results)
    else:
        books = await catalog.popular_books(max_results)
    return BookList(data=books)


@router.get("/curated", response_model=BookList)
async def curated_books(
    user: UserProfile = Depends(get_current_user),
    catalog: CatalogClient = Depends(get_catalog),
):
    return BookList(data=await catalog.curated_books())


@router.get("/genres", response_model=list[BookGenre])
async def list_genres():
    return GENRES


@router.post("/refresh")
async def refresh_catalog(
    user: UserProfile = Depends(get_current_user),
    catalog: CatalogClient = Depends(get_catalog),
):
    """Drop cached search results so the next request hits the API."""
    catalog.clear_cache()
    return {"message": "Catalog cache cleared"}
