"""
HTTP client for the external identity provider.

The provider speaks the Supabase (GoTrue) auth API. This module verifies
access tokens, creates users through the admin endpoint, and performs
password login/logout for the client side.
"""
import logging
from typing import Any, Dict, Optional

import httpx
from jose import JWTError, jwt

from .config import (
    IDENTITY_TIMEOUT,
    JWT_ALGORITHM,
    JWT_AUDIENCE,
    SUPABASE_JWT_SECRET,
    SUPABASE_SERVICE_ROLE_KEY,
    SUPABASE_URL,
)

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """The provider rejected an access token."""


class IdentityRejected(Exception):
    """The provider refused a request; ``message`` is safe to show users."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class IdentityUnavailable(Exception):
    """The provider could not be reached or failed unexpectedly."""


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    for field in ("msg", "message", "error_description", "error"):
        if isinstance(body, dict) and body.get(field):
            return str(body[field])
    return f"HTTP {response.status_code}"


class SupabaseIdentity:
    """
    Client for a Supabase-compatible auth API.

    Args:
        base_url: Provider root URL (``/auth/v1`` is appended per call)
        api_key: Service-role key on the server, anon key on the client
        jwt_secret: When set, ``verify`` decodes tokens locally instead of
            asking the provider
        timeout: Request timeout in seconds
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        jwt_secret: str = "",
        timeout: float = IDENTITY_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.jwt_secret = jwt_secret
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/auth/v1",
            timeout=self.timeout,
            transport=self.transport,
            headers={"apikey": self.api_key},
        )

    async def verify(self, token: str) -> str:
        """
        Verify an access token and return the user id it belongs to.

        Raises:
            IdentityError: If the token is invalid, expired, or has no user
            IdentityUnavailable: If the provider cannot be reached
        """
        if self.jwt_secret:
            return self._verify_locally(token)

        try:
            async with self._client() as client:
                response = await client.get("/user", headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as e:
            raise IdentityUnavailable(f"Identity provider error: {e}") from e

        if response.status_code >= 500:
            raise IdentityUnavailable(f"Identity provider returned HTTP {response.status_code}")
        if response.status_code != 200:
            raise IdentityError(_error_message(response))

        try:
            user = response.json()
        except ValueError as e:
            raise IdentityError("Unreadable user response") from e
        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id or not isinstance(user_id, str):
            raise IdentityError("Token has no user")
        return user_id

    def _verify_locally(self, token: str) -> str:
        try:
            payload = jwt.decode(token, self.jwt_secret, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE)
        except JWTError as e:
            logger.info(f"JWT validation error: {e}")
            raise IdentityError("Invalid token") from e
        user_id = payload.get("sub")
        if not user_id or not isinstance(user_id, str):
            raise IdentityError("Token has no user")
        return user_id

    async def create_user(self, email: str, password: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an already-confirmed user through the admin API.

        Returns:
            The provider's user object (``id``, ``email``, ``user_metadata``)

        Raises:
            IdentityRejected: If the provider refuses the user (e.g. duplicate email)
            IdentityUnavailable: On network failure or a provider-side error
        """
        payload = {
            "email": email,
            "password": password,
            "email_confirm": True,
            "user_metadata": metadata,
        }
        try:
            async with self._client() as client:
                response = await client.post(
                    "/admin/users",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as e:
            raise IdentityUnavailable(f"Identity provider error: {e}") from e

        if response.status_code >= 500:
            raise IdentityUnavailable(f"Identity provider returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise IdentityRejected(_error_message(response), response.status_code)
        return response.json()

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """
        Log in with email and password.

        Returns:
            Token response with ``access_token`` and ``user``
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    "/token",
                    params={"grant_type": "password"},
                    json={"email": email, "password": password},
                )
        except httpx.HTTPError as e:
            raise IdentityUnavailable(f"Identity provider error: {e}") from e

        if response.status_code >= 500:
            raise IdentityUnavailable(f"Identity provider returned HTTP {response.status_code}")
        if response.status_code >= 400:
            raise IdentityRejected(_error_message(response), response.status_code)
        return response.json()

    async def sign_out(self, token: str) -> None:
        """Revoke a session. An already-invalid token is not an error."""
        try:
            async with self._client() as client:
                response = await client.post("/logout", headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as e:
            raise IdentityUnavailable(f"Identity provider error: {e}") from e
        if response.status_code >= 500:
            raise IdentityUnavailable(f"Identity provider returned HTTP {response.status_code}")


def get_identity() -> SupabaseIdentity:
    """Dependency function that provides the server-side identity client."""
    return SupabaseIdentity(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, jwt_secret=SUPABASE_JWT_SECRET)
