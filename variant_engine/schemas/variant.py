from datetime import datetime
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class VariantAttributePair(BaseModel):
    key: str
    value: str


class Dimensions(BaseModel):
    length: Optional[float] = Field(default=None, gt=0)
    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    unit: Literal["cm", "mm", "inch", "ft"] = "cm"


class VariantCreate(BaseModel):
    """Price and quantity fall back to the owning product's values when omitted."""
    name: Optional[str] = Field(default=None, max_length=200)
    price: Optional[float] = None
    discount_price: Optional[float] = None
    quantity: Optional[int] = None
    images: List[str] = Field(default_factory=list, max_length=10)
    weight: Optional[float] = Field(default=None, gt=0)
    dimensions: Optional[Dimensions] = None
    is_active: bool = True
    is_default: bool = False
    sort_order: Optional[int] = Field(default=None, ge=0)
    attributes: List[VariantAttributePair] = Field(default_factory=list)


class VariantUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    price: Optional[float] = None
    discount_price: Optional[float] = None
    quantity: Optional[int] = None
    images: Optional[List[str]] = Field(default=None, max_length=10)
    weight: Optional[float] = Field(default=None, gt=0)
    dimensions: Optional[Dimensions] = None
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None
    sort_order: Optional[int] = Field(default=None, ge=0)
    attributes: Optional[List[VariantAttributePair]] = None


class VariantAttributeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    name: str
    value: str


class VariantRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    sku: str
    name: Optional[str] = None
    price: float
    discount_price: Optional[float] = None
    quantity: int
    images: List[str] = Field(default_factory=list)
    weight: Optional[float] = None
    dimensions: Optional[Dimensions] = None
    is_active: bool = True
    is_default: bool = False
    sort_order: int = 0
    attributes: List[VariantAttributeRead] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def combination(self) -> Dict[str, str]:
        return {attr.key: attr.value for attr in self.attributes}


class CombinationError(BaseModel):
    combination: Dict[str, str]
    code: str
    message: str


class VariantGenerationResult(BaseModel):
    """Outcome of bulk generation; ``created`` is the source of truth, not all-or-nothing."""
    created: List[VariantRead] = Field(default_factory=list)
    failed: List[CombinationError] = Field(default_factory=list)
