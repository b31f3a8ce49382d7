from .catalog import Product, DeletedProduct, DESCRIPTIVE_FIELDS, HISTORY_FIELDS
from .estimates import Estimate, EstimateLine

__all__ = [
    'Product', 'DeletedProduct', 'DESCRIPTIVE_FIELDS', 'HISTORY_FIELDS',
    'Estimate', 'EstimateLine',
]
