"""
Products Module - Input validation.

Turns raw JSON bodies and query strings into typed values:
- ``NewProduct``: a fully validated create payload
- ``ProductUpdate``: the named optional field changes of an update
- ``CatalogQuery``: listing filters, sort and pagination
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from fastpurchase.utils import to_decimal

from .faults import InvalidCatalogQueryFault, MissingProductFieldsFault, ProductValidationFault

NAME_RULE = "Product name must be between 3 and 100 characters"
DESCRIPTION_RULE = "Product description must be at least 10 characters long"
PRICE_RULE = "Price must be a positive number greater than 0"
STOCK_RULE = "Stock must be a non-negative integer (0 or more)"
PRICE_LIMIT_RULE = "Price cannot exceed 99999999.99"
STOCK_LIMIT_RULE = "Stock cannot exceed 9223372036854775807"
CATEGORY_RULE = "Category is required"
IMAGES_RULE = "Images must be an array of URL strings"
EMPTY_UPDATE_RULE = "At least one field must be provided for update"

SORT_COLUMNS = {
    "name": "name",
    "price": "price_cents",
    "stock": "stock",
    "createdAt": "created_at",
    "category": "category",
}

MAX_PAGE_SIZE = 100

# Upper bounds that keep every stored integer inside SQLite's signed 64-bit
# INTEGER. Prices follow the DECIMAL(10,2) column of the original schema.
INT64_MAX = 2**63 - 1
MAX_PRICE = Decimal("99999999.99")
MAX_STOCK = INT64_MAX
MAX_PAGE = INT64_MAX // MAX_PAGE_SIZE


# ============================================================================
# Field rules
# ============================================================================

def _is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _check_name(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not 3 <= len(value.strip()) <= 100:
        return NAME_RULE
    return None


def _check_description(value: Any) -> Optional[str]:
    if not isinstance(value, str) or len(value.strip()) < 10:
        return DESCRIPTION_RULE
    return None


def _check_price(value: Any) -> Tuple[Optional[Decimal], Optional[str]]:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return None, PRICE_RULE
    try:
        price = to_decimal(value)
    except ValueError:
        return None, PRICE_RULE
    if price <= 0:
        return None, PRICE_RULE
    if price > MAX_PRICE:
        return None, PRICE_LIMIT_RULE
    return price, None


def _check_stock(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return STOCK_RULE
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 0:
        return STOCK_RULE
    if value > MAX_STOCK:
        return STOCK_LIMIT_RULE
    return None


def _check_category(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return CATEGORY_RULE
    return None


def _check_images(value: Any) -> Optional[str]:
    if not isinstance(value, list) or not all(_is_url(v) for v in value):
        return IMAGES_RULE
    return None


def _as_count(raw: Optional[str]) -> Optional[int]:
    """Parse an ASCII digit string; anything else becomes -1 so range checks reject it."""
    if raw is None:
        return None
    if not (raw.isascii() and raw.isdigit()):
        return -1
    try:
        return int(raw)
    except ValueError:
        # past the interpreter's int string-length limit
        return -1


def _validate_fields(payload: Mapping[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Validate every field present in ``payload``; collect all violations."""
    values: Dict[str, Any] = {}
    errors: List[str] = []

    if "name" in payload:
        err = _check_name(payload["name"])
        if err:
            errors.append(err)
        else:
            values["name"] = payload["name"].strip()

    if "description" in payload:
        err = _check_description(payload["description"])
        if err:
            errors.append(err)
        else:
            values["description"] = payload["description"].strip()

    if "price" in payload:
        price, err = _check_price(payload["price"])
        if err:
            errors.append(err)
        else:
            values["price"] = price

    if "stock" in payload:
        err = _check_stock(payload["stock"])
        if err:
            errors.append(err)
        else:
            values["stock"] = int(payload["stock"])

    if "category" in payload:
        err = _check_category(payload["category"])
        if err:
            errors.append(err)
        else:
            values["category"] = payload["category"].strip()

    if "images" in payload:
        err = _check_images(payload["images"])
        if err:
            errors.append(err)
        else:
            values["images"] = [url.strip() for url in payload["images"]]

    return values, errors


# ============================================================================
# Create / update payloads
# ============================================================================

@dataclass(frozen=True)
class NewProduct:
    name: str
    description: str
    price: Decimal
    stock: int
    category: str
    images: List[str] = field(default_factory=list)

    @classmethod
    def parse(cls, payload: Any) -> "NewProduct":
        """
        Validate a create body.

        Raises:
            MissingProductFieldsFault: A required field is absent or empty
            ProductValidationFault: One or more field rules fail
        """
        if not isinstance(payload, dict):
            raise MissingProductFieldsFault()
        for name in ("name", "description", "category"):
            if not payload.get(name):
                raise MissingProductFieldsFault()
        for name in ("price", "stock"):
            if payload.get(name) is None:
                raise MissingProductFieldsFault()

        present = {k: v for k, v in payload.items() if k != "images" or v is not None}
        values, errors = _validate_fields(present)
        if errors:
            raise ProductValidationFault(errors)
        return cls(**values)


@dataclass(frozen=True)
class ProductUpdate:
    """
    Named optional field changes. ``None`` means "leave unchanged".
    """
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    stock: Optional[int] = None
    category: Optional[str] = None
    images: Optional[List[str]] = None

    @classmethod
    def parse(cls, payload: Any) -> "ProductUpdate":
        """
        Validate an update body. Unknown keys and ``null`` values are ignored.

        Raises:
            ProductValidationFault: A rule fails or no field is present
        """
        if not isinstance(payload, dict):
            raise ProductValidationFault([EMPTY_UPDATE_RULE])
        known = {f.name for f in fields(cls)}
        present = {k: v for k, v in payload.items() if k in known and v is not None}
        if not present:
            raise ProductValidationFault([EMPTY_UPDATE_RULE])
        values, errors = _validate_fields(present)
        if errors:
            raise ProductValidationFault(errors)
        return cls(**values)

    def present_fields(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}


# ============================================================================
# Catalog query
# ============================================================================

@dataclass(frozen=True)
class CatalogQuery:
    page: int = 1
    page_size: int = 10
    search: Optional[str] = None
    category: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    in_stock: Optional[bool] = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def sort_column(self) -> str:
        return SORT_COLUMNS[self.sort_by]

    @classmethod
    def parse(cls, params: Mapping[str, str]) -> "CatalogQuery":
        """
        Parse listing query parameters. Blank values count as absent.

        Raises:
            InvalidCatalogQueryFault: With one message per bad parameter
        """
        errors: List[str] = []
        values: Dict[str, Any] = {}

        def get(name: str) -> Optional[str]:
            raw = params.get(name)
            if raw is None or not raw.strip():
                return None
            return raw.strip()

        page = _as_count(get("page"))
        if page is not None:
            if page < 1:
                errors.append("page must be a positive integer")
            elif page > MAX_PAGE:
                errors.append(f"page cannot exceed {MAX_PAGE}")
            else:
                values["page"] = page

        page_size = _as_count(get("pageSize"))
        if page_size is not None:
            if not 1 <= page_size <= MAX_PAGE_SIZE:
                errors.append(f"pageSize must be an integer between 1 and {MAX_PAGE_SIZE}")
            else:
                values["page_size"] = page_size

        search = get("search")
        if search is not None:
            values["search"] = search

        category = get("category")
        if category is not None:
            values["category"] = category

        for name, key in (("minPrice", "min_price"), ("maxPrice", "max_price")):
            raw = get(name)
            if raw is None:
                continue
            try:
                amount = to_decimal(raw)
            except ValueError:
                amount = None
            if amount is None or amount < 0:
                errors.append(f"{name} must be a non-negative number")
            elif amount > MAX_PRICE:
                errors.append(f"{name} cannot exceed {MAX_PRICE}")
            else:
                values[key] = amount

        if (
            values.get("min_price") is not None
            and values.get("max_price") is not None
            and values["min_price"] > values["max_price"]
        ):
            errors.append("minPrice cannot be greater than maxPrice")

        in_stock = get("inStock")
        if in_stock is not None:
            if in_stock.lower() not in ("true", "false"):
                errors.append("inStock must be true or false")
            else:
                values["in_stock"] = in_stock.lower() == "true"

        sort_by = get("sortBy")
        if sort_by is not None:
            if sort_by not in SORT_COLUMNS:
                errors.append(f"sortBy must be one of: {', '.join(SORT_COLUMNS)}")
            else:
                values["sort_by"] = sort_by

        sort_order = get("sortOrder")
        if sort_order is not None:
            if sort_order.lower() not in ("asc", "desc"):
                errors.append("sortOrder must be asc or desc")
            else:
                values["sort_order"] = sort_order.lower()

        if errors:
            raise InvalidCatalogQueryFault(errors)
        return cls(**values)
