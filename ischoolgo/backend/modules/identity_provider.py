# ischoolgo/backend/modules/identity_provider.py

import logging
from typing import Any, Dict
from uuid import UUID
import httpx

from ..config.config import settings

logger = logging.getLogger(__name__)


class IdentityAuthError(Exception):
    """Raised when the provider rejects the email/password pair."""
    pass


class IdentitySessionError(Exception):
    """Raised when the provider is unreachable or answers with something unexpected."""
    pass


class IdentityProviderClient:
    """
    Client for the external identity provider (GoTrue-style REST API).
    The HTTP client is injected so callers control its lifetime and tests can mock it.
    """

    def __init__(self, http_client: httpx.AsyncClient, base_url: str = None, api_key: str = None):
        self._client = http_client
        self._base_url = (base_url or settings.IDENTITY_PROVIDER_URL or "").rstrip("/")
        self._api_key = api_key or settings.IDENTITY_PROVIDER_API_KEY

    def _headers(self, access_token: str = None) -> Dict[str, str]:
        headers = {"apikey": self._api_key or "", "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """
        Password grant. Returns {"user_id": UUID, "access_token": str}.
        Raises IdentityAuthError on bad credentials.
        """
        logger.info(f"Authenticating '{email}' against the identity provider.")
        try:
            response = await self._client.post(
                f"{self._base_url}/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers=self._headers(),
            )
        except httpx.RequestError as e:
            logger.error(f"Network error while contacting the identity provider: {e}", exc_info=True)
            raise IdentitySessionError("The identity provider could not be reached.") from e

        if response.status_code in (400, 401):
            logger.warning(f"Identity provider rejected the credentials of '{email}'.")
            raise IdentityAuthError("Invalid email or password.")
        if response.is_error:
            logger.error(f"Identity provider answered {response.status_code} on sign-in.")
            raise IdentitySessionError(f"The identity provider answered {response.status_code}.")

        try:
            body = response.json()
            return {"user_id": UUID(body["user"]["id"]), "access_token": body["access_token"]}
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Malformed sign-in response from the identity provider.", exc_info=True)
            raise IdentitySessionError("The identity provider returned an unexpected response.") from e

    async def sign_up(self, email: str, password: str) -> UUID:
        """Creates the account and returns the provider's user id."""
        logger.info(f"Creating identity provider account for '{email}'.")
        try:
            response = await self._client.post(
                f"{self._base_url}/auth/v1/signup",
                json={"email": email, "password": password},
                headers=self._headers(),
            )
        except httpx.RequestError as e:
            logger.error(f"Network error while contacting the identity provider: {e}", exc_info=True)
            raise IdentitySessionError("The identity provider could not be reached.") from e

        if response.status_code in (400, 422):
            logger.warning(f"Identity provider refused to create '{email}': {response.text}")
            raise IdentityAuthError("The account could not be created with these credentials.")
        if response.is_error:
            raise IdentitySessionError(f"The identity provider answered {response.status_code}.")

        try:
            body = response.json()
            # Depending on email confirmation the user is either nested or the body itself
            user = body.get("user") or body
            return UUID(user["id"])
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("Malformed sign-up response from the identity provider.", exc_info=True)
            raise IdentitySessionError("The identity provider returned an unexpected response.") from e

    async def sign_out(self, access_token: str) -> None:
        """Revokes the provider token. Failures are logged, not raised."""
        try:
            response = await self._client.post(
                f"{self._base_url}/auth/v1/logout", headers=self._headers(access_token)
            )
            if response.is_error:
                logger.warning(f"Identity provider answered {response.status_code} on sign-out.")
        except httpx.RequestError as e:
            logger.warning(f"Could not revoke the identity provider token: {e}")
