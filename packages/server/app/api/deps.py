"""
FastAPI dependencies resolving the collaborators injected into `create_app`.
"""

from __future__ import annotations

from fastapi import Request

from app.core.config import Settings
from app.core.identity import IdentityProvider
from app.services.catalog import CatalogClient
from app.services.subscriptions import SubscriptionService


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_catalog(request: Request) -> CatalogClient:
    return request.app.state.catalog


def get_identity(request: Request) -> IdentityProvider:
    return request.app.state.identity


def get_service(request: Request) -> SubscriptionService:
    return request.app.state.service
