"""
Client-side session management.

The client logs in against the identity provider directly and carries the
resulting access token to the Inventory service. The current session lives
in an explicit ``SessionContext`` handed to the components that need it.
"""
import logging
from typing import Optional

from pydantic import BaseModel

from ..identity import IdentityRejected, IdentityUnavailable, SupabaseIdentity
from .api_client import ApiError, InventoryAPI
from .notifications import Notifier

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class NotAuthenticated(Exception):
    """An operation needed a session but nobody is logged in."""


class Session(BaseModel):
    """Logged-in user and the bearer token for Inventory service calls."""
    user_id: str
    email: str
    name: str
    access_token: str


class SessionContext:
    """
    Holds the current session with explicit login and logout transitions.

    Args:
        identity: Identity provider client configured with the public key
        api: Inventory service client, used for signup
        notifier: Destination for user-facing notices
    """

    def __init__(self, identity: SupabaseIdentity, api: InventoryAPI, notifier: Notifier):
        self.identity = identity
        self.api = api
        self.notifier = notifier
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def require(self) -> Session:
        """Return the current session or raise ``NotAuthenticated``."""
        if self._session is None:
            raise NotAuthenticated("Login required")
        return self._session

    async def login(self, email: str, password: str) -> Optional[Session]:
        """
        Log in with email and password.

        Returns:
            The new session, or None if the provider refused the credentials
        """
        try:
            data = await self.identity.sign_in(email, password)
        except (IdentityRejected, IdentityUnavailable) as e:
            self.notifier.error("Login failed", getattr(e, "message", str(e)))
            return None

        user = data.get("user") or {}
        access_token = data.get("access_token")
        if not access_token or not user.get("id"):
            self.notifier.error("Login failed", "No session returned")
            return None

        user_email = user.get("email") or ""
        metadata = user.get("user_metadata") or {}
        self._session = Session(
            user_id=user["id"],
            email=user_email,
            name=metadata.get("name") or user_email or "User",
            access_token=access_token,
        )
        self.notifier.success("Welcome!", f"Logged in as {self._session.name}")
        return self._session

    async def logout(self) -> None:
        """End the session locally, revoking it at the provider when possible."""
        if self._session is None:
            return
        token = self._session.access_token
        self._session = None
        try:
            await self.identity.sign_out(token)
        except IdentityUnavailable as e:
            logger.warning(f"Could not revoke session: {e}")

    async def signup(self, name: str, email: str, password: str, confirm: str) -> bool:
        """
        Register an account. Password checks run before any request.

        Returns:
            True if the account was created
        """
        if password != confirm:
            self.notifier.error("Signup failed", "Passwords do not match")
            return False
        if len(password) < MIN_PASSWORD_LENGTH:
            self.notifier.error("Signup failed", f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
            return False

        try:
            await self.api.signup(email, password, name)
        except ApiError as e:
            self.notifier.error("Signup failed", e.message)
            return False
        self.notifier.success("Account created", "You can log in now")
        return True
