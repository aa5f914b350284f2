"""
Product list view-model.

Loads the caller's products once, exposes filtered items and statistics,
and applies quantity changes and deletions optimistically. The two
mutation kinds recover differently when the server refuses them:

- quantity: re-fetch the list and take the server's values
- delete: put back the exact list as it was before the deletion

Creation is not optimistic; the product appears once the server returns it.
"""
import logging
from enum import Enum
from typing import List, NamedTuple, Optional

from .. import schemas
from ..stock import InventoryStats, StockStatus, matches_search, stock_status, summarize
from .api_client import ApiError, InventoryAPI
from .notifications import Notifier
from .session import Session

logger = logging.getLogger(__name__)


class ViewState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    REFRESHING = "refreshing"


class MutationKind(str, Enum):
    QUANTITY = "quantity"
    DELETE = "delete"


class FailurePolicy(str, Enum):
    REFETCH = "refetch"
    RESTORE_SNAPSHOT = "restore_snapshot"


class Mutation(NamedTuple):
    kind: MutationKind
    on_failure: FailurePolicy


QUANTITY_MUTATION = Mutation(MutationKind.QUANTITY, FailurePolicy.REFETCH)
DELETE_MUTATION = Mutation(MutationKind.DELETE, FailurePolicy.RESTORE_SNAPSHOT)


class MutationResult(NamedTuple):
    mutation: Mutation
    product_id: str
    ok: bool
    error: Optional[str] = None


class InventoryListView:
    """
    Local state of the product list for one session.

    Args:
        api: Inventory service client
        session: Session whose token authorizes every call
        notifier: Destination for success and error notices
    """

    def __init__(self, api: InventoryAPI, session: Session, notifier: Notifier):
        self.api = api
        self.session = session
        self.notifier = notifier
        self.state = ViewState.LOADING
        self.items: List[schemas.Product] = []
        self.search = ""
        self.dialog_open = False

    @property
    def visible_items(self) -> List[schemas.Product]:
        if not self.search:
            return list(self.items)
        return [item for item in self.items if matches_search(item, self.search)]

    @property
    def stats(self) -> InventoryStats:
        return summarize(self.items)

    def status_of(self, item: schemas.Product) -> StockStatus:
        return stock_status(item.quantity, item.min_stock)

    def find(self, product_id: str) -> Optional[schemas.Product]:
        return next((item for item in self.items if item.id == product_id), None)

    async def load(self) -> None:
        """Initial fetch. Ends in READY whatever the outcome."""
        self.state = ViewState.LOADING
        try:
            await self._fetch()
        finally:
            self.state = ViewState.READY

    async def refresh(self) -> None:
        """Explicit re-fetch. Returns to READY whatever the outcome."""
        self.state = ViewState.REFRESHING
        try:
            await self._fetch()
        finally:
            self.state = ViewState.READY

    async def _fetch(self) -> None:
        try:
            self.items = await self.api.list_products(self.session.access_token)
        except ApiError as e:
            self.notifier.error("Failed to load products", e.message)

    async def adjust_quantity(self, product_id: str, change: int) -> Optional[MutationResult]:
        """
        Add ``change`` (possibly negative) to a product's quantity, clamped at zero.

        Returns:
            The mutation outcome, or None if the product is not in the list
        """
        item = self.find(product_id)
        if item is None:
            return None
        new_quantity = max(0, item.quantity + change)
        self.items = [
            i.model_copy(update={"quantity": new_quantity}) if i.id == product_id else i
            for i in self.items
        ]

        try:
            await self.api.update_product(self.session.access_token, product_id, new_quantity)
        except ApiError as e:
            self.notifier.error("Failed to update quantity", e.message)
            await self._recover(QUANTITY_MUTATION, snapshot=None)
            return MutationResult(QUANTITY_MUTATION, product_id, ok=False, error=e.message)

        self.notifier.success("Quantity updated")
        return MutationResult(QUANTITY_MUTATION, product_id, ok=True)

    async def delete(self, product_id: str) -> MutationResult:
        """Remove a product at once; restore the previous list if the server refuses."""
        snapshot = list(self.items)
        self.items = [i for i in self.items if i.id != product_id]

        try:
            await self.api.delete_product(self.session.access_token, product_id)
        except ApiError as e:
            self.notifier.error("Failed to delete product", e.message)
            await self._recover(DELETE_MUTATION, snapshot=snapshot)
            return MutationResult(DELETE_MUTATION, product_id, ok=False, error=e.message)

        self.notifier.success("Product deleted")
        return MutationResult(DELETE_MUTATION, product_id, ok=True)

    async def _recover(self, mutation: Mutation, snapshot: Optional[List[schemas.Product]]) -> None:
        logger.info(f"Recovering from failed {mutation.kind.value} mutation via {mutation.on_failure.value}")
        if mutation.on_failure is FailurePolicy.REFETCH:
            await self._fetch()
        elif mutation.on_failure is FailurePolicy.RESTORE_SNAPSHOT:
            self.items = snapshot

    def open_create_dialog(self) -> None:
        self.dialog_open = True

    def close_create_dialog(self) -> None:
        self.dialog_open = False

    async def create(self, item: schemas.ProductCreate) -> Optional[schemas.Product]:
        """
        Create a product and append the server's copy.

        The creation dialog closes only when the server accepts the product.
        """
        try:
            product = await self.api.create_product(self.session.access_token, item)
        except ApiError as e:
            self.notifier.error("Failed to add product", e.message)
            return None
        self.items = self.items + [product]
        self.dialog_open = False
        self.notifier.success("Product added")
        return product
