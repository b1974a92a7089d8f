"""
Products Module

Components:
- ProductRepository: inventory store (lookup, conditional stock decrement)
- ProductService: catalog listing, lookup and admin writes
- ProductController: /products routes
- NewProduct / ProductUpdate / CatalogQuery: validated inputs
"""

from .controllers import ProductController
from .faults import (
    InvalidCatalogQueryFault,
    MissingProductFieldsFault,
    ProductNotFoundFault,
    ProductValidationFault,
)
from .repository import ProductRepository, product_to_dict
from .services import Page, ProductService
from .validators import CatalogQuery, NewProduct, ProductUpdate

__all__ = [
    "ProductController",
    "ProductRepository",
    "ProductService",
    "Page",
    "product_to_dict",
    "CatalogQuery",
    "NewProduct",
    "ProductUpdate",
    "ProductNotFoundFault",
    "MissingProductFieldsFault",
    "ProductValidationFault",
    "InvalidCatalogQueryFault",
]
