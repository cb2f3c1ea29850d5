from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from variant_engine.models.attribute import AttributeType
from variant_engine.services.catalog.attribute_values import parse_attribute_value


# Template Schemas
class AttributeTemplateBase(BaseModel):
    name: str = Field(max_length=100)
    type: AttributeType
    is_required: bool = False
    options: List[str] = Field(default_factory=list)
    unit: Optional[str] = Field(default=None, max_length=10)
    description: Optional[str] = Field(default=None, max_length=500)
    sort_order: int = Field(default=0, ge=0)


class AttributeTemplateCreate(AttributeTemplateBase):
    is_variant: bool = False


class AttributeTemplateUpdate(BaseModel):
    """Partial update; only fields explicitly set are applied. ``key`` is immutable."""
    name: Optional[str] = Field(default=None, max_length=100)
    type: Optional[AttributeType] = None
    is_required: Optional[bool] = None
    is_variant: Optional[bool] = None
    options: Optional[List[str]] = None
    unit: Optional[str] = Field(default=None, max_length=10)
    description: Optional[str] = Field(default=None, max_length=500)
    sort_order: Optional[int] = Field(default=None, ge=0)


class AttributeTemplateRead(AttributeTemplateBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    category_id: UUID
    key: str
    is_variant: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CustomAttributeTemplateCreate(AttributeTemplateBase):
    pass


class CustomAttributeTemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    type: Optional[AttributeType] = None
    is_required: Optional[bool] = None
    options: Optional[List[str]] = None
    unit: Optional[str] = Field(default=None, max_length=10)
    description: Optional[str] = Field(default=None, max_length=500)
    sort_order: Optional[int] = Field(default=None, ge=0)


class CustomAttributeTemplateRead(AttributeTemplateBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    seller_id: str
    key: str
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_variant(self) -> bool:
        # Seller attributes are informational and never partition a product into SKUs
        return False


# Product Attribute Schemas
class ProductAttributeInput(BaseModel):
    key: str
    value: str
    unit: Optional[str] = None


class ProductAttributeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    product_id: UUID
    key: str
    name: str
    value: str
    type: AttributeType
    unit: Optional[str] = None

    @property
    def typed_value(self) -> Any:
        """The stored string coerced according to ``type``."""
        return parse_attribute_value(self.type, self.value).value


class AttributeReconcileReport(BaseModel):
    updated: List[str] = Field(default_factory=list)
    orphaned: List[str] = Field(default_factory=list)
    attributes: List[ProductAttributeRead] = Field(default_factory=list)
