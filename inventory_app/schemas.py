"""
Pydantic schemas for request/response validation in the Inventory service.

These schemas are the wire contract shared by the service and the client.
JSON field names are camelCase (``minStock``, ``ownerId``); Python code uses
the snake_case attribute names.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serializing field names as camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductBase(CamelModel):
    """Base schema with common product attributes."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0, description="Units currently in stock")
    min_stock: int = Field(..., ge=0, description="Reorder threshold")


class ProductCreate(ProductBase):
    """Schema for creating a new product. Ownership is never client-supplied."""
    pass


class ProductQuantityUpdate(CamelModel):
    """Schema for updating a product. Only the quantity is mutable."""
    quantity: int = Field(..., ge=0)


class Product(ProductBase):
    """
    Schema for product responses and stored records.

    Attributes:
        id (str): Server-generated unique identifier
        owner_id (str): Identity of the user that created the product
        created_at (datetime): When the product was created
        updated_at (datetime): When the quantity was last changed, if ever
    """
    id: str
    owner_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class ProductEnvelope(BaseModel):
    """Single-product response body."""
    product: Product


class ProductList(BaseModel):
    """Product listing response body."""
    products: List[Product]


class DeleteResult(BaseModel):
    """Delete acknowledgement."""
    success: bool = True


class SignupRequest(BaseModel):
    """Schema for user registration."""
    email: EmailStr
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class SignupUser(BaseModel):
    """User created by the identity provider."""
    id: str
    email: str
    name: Optional[str] = None


class SignupResponse(BaseModel):
    """Signup response body."""
    success: bool = True
    user: SignupUser


class ErrorResponse(BaseModel):
    """Error body returned by every failing endpoint."""
    error: str
