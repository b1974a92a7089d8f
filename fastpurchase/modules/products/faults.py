"""
Products Module - Fault Definitions
"""

from typing import Sequence

from fastpurchase.faults import FaultDomain, NotFoundFault, ValidationFault


PRODUCTS_DOMAIN = FaultDomain(
    name="products",
    description="Catalog fault domain",
)


class ProductNotFoundFault(NotFoundFault):
    domain = PRODUCTS_DOMAIN
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        super().__init__(
            "Product not found",
            [f"Product with ID {product_id} does not exist"],
            metadata={"product_id": product_id},
        )
        self.product_id = product_id


class MissingProductFieldsFault(ValidationFault):
    domain = PRODUCTS_DOMAIN
    code = "PRODUCT_FIELDS_REQUIRED"

    def __init__(self):
        super().__init__(
            "All fields are required",
            ["Name, description, price, stock, and category are required"],
        )


class ProductValidationFault(ValidationFault):
    domain = PRODUCTS_DOMAIN
    code = "PRODUCT_VALIDATION_FAILED"

    def __init__(self, errors: Sequence[str]):
        super().__init__("Validation failed", list(errors))


class InvalidCatalogQueryFault(ValidationFault):
    domain = PRODUCTS_DOMAIN
    code = "INVALID_CATALOG_QUERY"

    def __init__(self, errors: Sequence[str]):
        super().__init__("Invalid query parameters", list(errors))
