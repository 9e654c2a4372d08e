"""
Identity provider client (Google OAuth userinfo).

Exchanges an access token for the profile it belongs to and decides whether
that profile may use the application.
"""

from __future__ import annotations

import httpx
import structlog

from app.core.errors import IdentityError
from fabledrop_shared.schemas.users import UserProfile

log = structlog.get_logger()


class IdentityProvider:
    def __init__(
        self,
        userinfo_url: str,
        authorized_emails: list[str] | None = None,
        request_timeout: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._userinfo_url = userinfo_url
        self._authorized = {e.strip().lower() for e in authorized_emails or [] if e.strip()}
        self._request_timeout = request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._request_timeout),
            transport=self._transport,
        )
        if not self._authorized:
            log.warning("identity.no_authorized_emails")

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_profile(self, access_token: str) -> UserProfile:
        """Return the profile for `access_token`. Raises IdentityError."""
        assert self._client, "identity provider is not open"
        if not access_token:
            raise IdentityError("Missing access token")
        try:
            resp = await self._client.get(
                self._userinfo_url,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            log.warning("identity.rejected", status=exc.response.status_code)
            raise IdentityError("Invalid or expired access token") from exc
        except httpx.HTTPError as exc:
            log.error("identity.unreachable", error=str(exc))
            raise IdentityError("Identity provider unreachable") from exc
        except ValueError as exc:
            raise IdentityError("Identity provider returned an invalid profile") from exc

        if not isinstance(data, dict) or not data.get("email"):
            raise IdentityError("Identity provider returned a profile without an email")

        return UserProfile(
            id=str(data.get("id") or data.get("sub") or data["email"]),
            email=data["email"],
            name=data.get("name") or data["email"],
            picture=data.get("picture"),
        )

    def is_authorized(self, email: str) -> bool:
        """Only emails on the configured list may sign in. An empty list admits nobody."""
        return email.strip().lower() in self._authorized
