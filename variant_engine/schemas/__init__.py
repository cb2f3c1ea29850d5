from .attribute import (
    AttributeReconcileReport,
    AttributeTemplateCreate,
    AttributeTemplateRead,
    AttributeTemplateUpdate,
    CustomAttributeTemplateCreate,
    CustomAttributeTemplateRead,
    CustomAttributeTemplateUpdate,
    ProductAttributeInput,
    ProductAttributeRead,
)
from .variant import (
    CombinationError,
    Dimensions,
    VariantAttributePair,
    VariantAttributeRead,
    VariantCreate,
    VariantGenerationResult,
    VariantRead,
    VariantUpdate,
)
