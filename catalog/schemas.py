from enum import Enum
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime


class ProductCategory(str, Enum):
    FOOD = "Food"
    BEVERAGE = "Beverage"
    CLOTHES = "Clothes"
    FURNITURE = "Furniture"
    TOOLS = "Tools"


class CamelModel(BaseModel):
    """Base for wire models: snake_case in Python, camelCase in JSON."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        use_enum_values = True


# Product Schemas
class ProductCreate(CamelModel):
    name: str = Field(..., min_length=4, max_length=32, description="Product name")
    category: ProductCategory = Field(..., description="Product category")
    qty: int = Field(..., ge=1, description="Quantity in stock")
    price: float = Field(..., ge=100, description="Unit price")
    sku: str = Field(..., min_length=1, max_length=32, description="Stock keeping unit")
    file_id: str = Field(..., min_length=1, description="ID of a previously uploaded file")


class ProductUpdate(CamelModel):
    """Partial update: omitted or null fields keep their stored value."""
    name: Optional[str] = Field(None, min_length=4, max_length=32)
    category: Optional[ProductCategory] = None
    qty: Optional[int] = Field(None, ge=1)
    price: Optional[float] = Field(None, ge=100)
    sku: Optional[str] = Field(None, min_length=1, max_length=32)
    file_id: Optional[str] = Field(None, min_length=1)


class ProductResponse(CamelModel):
    product_id: str
    name: str
    category: ProductCategory
    qty: int
    price: float
    sku: str
    file_id: str
    file_uri: str
    file_thumbnail_uri: str
    created_at: datetime
    updated_at: datetime


class MessageResponse(BaseModel):
    message: str
