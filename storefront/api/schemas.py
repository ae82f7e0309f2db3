# storefront/api/schemas.py
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Page(BaseModel):
    data: List[Dict[str, Any]]
    total: int
    page: int
    limit: int


class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1, max_length=200)
    category: str
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0)
    supplier: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    description: str = ""
    attributes: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    category: Optional[str] = None
    supplier: Optional[str] = None
    tags: Optional[List[str]] = None
    attributes: Optional[Dict[str, Any]] = None


class OrderLine(BaseModel):
    sku: str
    quantity: int = Field(1, ge=1)


class OrderCreate(BaseModel):
    customer_email: str
    items: List[OrderLine] = Field(..., min_length=1)
    shipping_address: str = ""


class StatusChange(BaseModel):
    status: str
