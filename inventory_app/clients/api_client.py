"""
HTTP client for communicating with the Inventory service.

Every call opens a short-lived ``httpx.AsyncClient``. Non-2xx responses and
transport failures are raised as ``ApiError`` carrying the server's error
message.
"""
import logging
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from .. import schemas
from ..config import API_PREFIX, CLIENT_TIMEOUT, INVENTORY_SERVICE_URL, SUPABASE_ANON_KEY

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A request to the Inventory service failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _parse(model, data: dict):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ApiError("Invalid response from server") from e


class InventoryAPI:
    """
    Async client for the Inventory service endpoints.

    Args:
        base_url: Service root including the API prefix
        anon_key: Public key sent as the bearer token on signup
        timeout: Request timeout in seconds
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        base_url: str = INVENTORY_SERVICE_URL + API_PREFIX,
        anon_key: str = SUPABASE_ANON_KEY,
        timeout: float = CLIENT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self.transport = transport

    async def _request(self, method: str, path: str, token: Optional[str] = None, json: Any = None) -> dict:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ApiError(f"Inventory service error: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None
        if not response.is_success:
            message = data.get("error") if isinstance(data, dict) else None
            raise ApiError(message or "Request failed", response.status_code)
        if not isinstance(data, dict):
            raise ApiError("Invalid response from server", response.status_code)
        return data

    async def list_products(self, token: str) -> List[schemas.Product]:
        """Retrieve all of the caller's products."""
        data = await self._request("GET", "/products", token=token)
        return _parse(schemas.ProductList, data).products

    async def create_product(self, token: str, item: schemas.ProductCreate) -> schemas.Product:
        """Create a product and return the server's canonical copy."""
        data = await self._request("POST", "/products", token=token, json=item.model_dump(by_alias=True))
        return _parse(schemas.ProductEnvelope, data).product

    async def update_product(self, token: str, product_id: str, quantity: int) -> schemas.Product:
        """Replace a product's quantity."""
        data = await self._request("PUT", f"/products/{product_id}", token=token, json={"quantity": quantity})
        return _parse(schemas.ProductEnvelope, data).product

    async def delete_product(self, token: str, product_id: str) -> None:
        """Delete a product."""
        await self._request("DELETE", f"/products/{product_id}", token=token)

    async def signup(self, email: str, password: str, name: str) -> schemas.SignupUser:
        """Register a new account through the service's signup passthrough."""
        data = await self._request(
            "POST",
            "/signup",
            token=self.anon_key or None,
            json={"email": email, "password": password, "name": name},
        )
        return _parse(schemas.SignupResponse, data).user
