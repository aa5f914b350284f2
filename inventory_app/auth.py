"""
Authentication and authorization utilities for the Inventory service.

Bearer tokens are issued by the external identity provider; every protected
request re-verifies its token there. Authorization is ownership: each
product lives under its owner's key namespace, and every handler builds
keys and checks loaded records through the helpers below.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from .errors import NotFound, Unauthorized
from .identity import IdentityError, IdentityUnavailable, SupabaseIdentity, get_identity

logger = logging.getLogger(__name__)

# Missing or malformed headers are reported by get_current_user itself
security = HTTPBearer(auto_error=False)

PRODUCT_NAMESPACE = "products"


class CurrentUser(BaseModel):
    """Current authenticated user information."""
    id: str
    token: str


async def authenticate(token: Optional[str], identity: SupabaseIdentity) -> CurrentUser:
    """
    Verify a bearer token and return the user it belongs to.

    Args:
        token: Bearer token from the Authorization header, if any
        identity: Identity provider client

    Returns:
        Current authenticated user information

    Raises:
        Unauthorized: If the token is missing, the provider rejects it, or the
            user id it names cannot own a key namespace
    """
    if not token:
        raise Unauthorized("No authorization header")

    try:
        user_id = await identity.verify(token)
    except IdentityError as e:
        logger.info(f"Token rejected: {e}")
        raise Unauthorized()
    except IdentityUnavailable as e:
        logger.error(f"Token verification failed: {e}")
        raise Unauthorized()

    try:
        _check_key_part(user_id)
    except ValueError as e:
        logger.warning(f"Token rejected: {e}")
        raise Unauthorized()
    return CurrentUser(id=user_id, token=token)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: SupabaseIdentity = Depends(get_identity),
) -> CurrentUser:
    """
    FastAPI dependency to get the current authenticated user.

    Args:
        credentials: HTTP Authorization credentials (injected)
        identity: Identity provider client (injected)

    Returns:
        Current authenticated user information

    Raises:
        Unauthorized: If the header is missing or the token is not accepted
    """
    return await authenticate(credentials.credentials if credentials else None, identity)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def requires_auth(route) -> bool:
    """Whether a matched route depends on ``get_current_user``."""
    dependant = getattr(route, "dependant", None)
    pending = list(dependant.dependencies) if dependant is not None else []
    while pending:
        dependency = pending.pop()
        if dependency.call is get_current_user:
            return True
        pending.extend(dependency.dependencies)
    return False


def owner_prefix(owner_id: str) -> str:
    """Key prefix of an owner's namespace, e.g. ``products:{ownerId}:``."""
    _check_key_part(owner_id)
    return f"{PRODUCT_NAMESPACE}:{owner_id}:"


def product_key(owner_id: str, product_id: str) -> str:
    """
    Build the storage key of a product inside its owner's namespace.

    Raises:
        NotFound: If ``product_id`` cannot name a key in the namespace
    """
    try:
        _check_key_part(product_id)
    except ValueError:
        raise NotFound()
    return owner_prefix(owner_id) + product_id


def check_owner(record: Optional[Dict[str, Any]], owner_id: str) -> Dict[str, Any]:
    """
    Return ``record`` if it exists and belongs to ``owner_id``.

    Foreign records are reported as missing so that other owners' ids
    are indistinguishable from unknown ones.

    Raises:
        NotFound: If the record is absent or owned by someone else
    """
    if record is None or record.get("ownerId") != owner_id:
        raise NotFound()
    return record


def _check_key_part(part: str) -> None:
    if not isinstance(part, str) or not part or ":" in part:
        raise ValueError(f"Invalid key component: {part!r}")
