"""
CRUD (Create, Read, Update, Delete) operations for the Inventory service.

Products are stored as JSON documents in the key-value store under
``products:{ownerId}:{id}``. Every key is built, and every loaded record
checked, through the ownership helpers in ``auth``.
"""
import uuid
from datetime import datetime, timezone
from typing import List

from . import schemas
from .auth import check_owner, owner_prefix, product_key
from .errors import NotFound


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_record(product: schemas.Product) -> dict:
    return product.model_dump(by_alias=True, mode="json")


def get_products(store, owner_id: str) -> List[schemas.Product]:
    """
    Retrieve every product in an owner's namespace.

    Args:
        store: Key-value store
        owner_id: Owner whose products to load

    Returns:
        List of Product objects (empty if the owner has none)
    """
    records = store.list_by_prefix(owner_prefix(owner_id))
    return [
        schemas.Product.model_validate(record)
        for record in records
        if record.get("ownerId") == owner_id
    ]


def get_product(store, owner_id: str, product_id: str) -> schemas.Product:
    """
    Retrieve a single product owned by ``owner_id``.

    Raises:
        NotFound: If the owner has no product with that id
    """
    record = check_owner(store.get(product_key(owner_id, product_id)), owner_id)
    return schemas.Product.model_validate(record)


def create_product(store, owner_id: str, item: schemas.ProductCreate) -> schemas.Product:
    """
    Create a new product with a server-generated id.

    Args:
        store: Key-value store
        owner_id: Authenticated caller, recorded as the owner
        item: Product data to create

    Returns:
        Created Product object
    """
    product = schemas.Product(
        id=str(uuid.uuid4()),
        owner_id=owner_id,
        created_at=_now(),
        **item.model_dump(),
    )
    store.set(product_key(owner_id, product.id), _to_record(product))
    return product


def update_product_quantity(store, owner_id: str, product_id: str, quantity: int) -> schemas.Product:
    """
    Replace a product's quantity and stamp ``updatedAt``.

    Last write wins: there is no version check against concurrent updates.

    Raises:
        NotFound: If the owner has no product with that id
    """
    product = get_product(store, owner_id, product_id)
    updated = product.model_copy(update={"quantity": quantity, "updated_at": _now()})
    store.set(product_key(owner_id, product_id), _to_record(updated))
    return updated


def delete_product(store, owner_id: str, product_id: str) -> None:
    """
    Delete a product. Deleting an id that does not exist is not an error.
    """
    try:
        key = product_key(owner_id, product_id)
    except NotFound:
        # An id that cannot name a key has nothing stored under it
        return
    store.delete(key)
