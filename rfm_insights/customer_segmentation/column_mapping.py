"""
Column Mapping Module
=====================

Infers which CSV headers hold the customer identifier, transaction date,
amount and (optionally) location of a transaction log.

Usage:
    from rfm_insights.customer_segmentation import ColumnMapper

    mapper = ColumnMapper()
    result = mapper.detect(["Order Date", "Customer ID", "Total Amount"])
    if isinstance(result, ColumnMappingFailed):
        print(result.reason)
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field


# Variant order is significant: the first listed variant present in the
# headers wins for its role.
COLUMN_VARIANTS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('customer_id', (
        'customer id', 'customer_id', 'customerid', 'cust id',
        'user id', 'userid', 'customer',
    )),
    ('date', (
        'order date', 'invoicedate', 'transactiondate', 'date',
        'orderdate', 'purchase date', 'purchase_date',
    )),
    ('amount', (
        'sales', 'transactionamount', 'totalamount', 'amount',
        'total amount', 'total', 'total price', 'revenue',
        'amount_spent', 'price',
    )),
    ('location', (
        'state', 'region', 'country', 'city', 'store', 'branch',
        'location', 'store_name', 'store name',
    )),
)

REQUIRED_ROLES = ('customer_id', 'date', 'amount')

MAPPING_FAILED_MESSAGE = (
    "Upload failed: The CSV must contain headers for Customer ID, "
    "a Date, and Sales/Amount."
)


class LocationColumn(BaseModel):
    """Location header plus the variant it matched (used as a display tag)."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str

    @property
    def label(self) -> str:
        return self.type[:1].upper() + self.type[1:]


class ColumnMap(BaseModel):
    """Resolved header names for one analysis run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    customer_id: str = Field(alias='customerId')
    date: str
    amount: str
    location: Optional[LocationColumn] = None

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class ColumnMappingFailed:
    """Structured failure returned when a required role is unresolved."""

    reason: str
    missing: Tuple[str, ...] = ()


MappingResult = Union[ColumnMap, ColumnMappingFailed]


def normalize_header(header: str) -> str:
    """Trim, lower-case and drop a leading byte-order mark."""
    return str(header).lower().strip().lstrip('\ufeff').strip()


class ColumnMapper:
    """
    Header-based column role inference.

    Example:
        >>> mapper = ColumnMapper()
        >>> column_map = mapper.detect(["Customer ID", "Date", "Sales"])
        >>> column_map.amount
        'Sales'
    """

    def __init__(
        self,
        variants: Sequence[Tuple[str, Sequence[str]]] = COLUMN_VARIANTS
    ):
        """
        Initialize ColumnMapper.

        Args:
            variants: Ordered (role, accepted header variants) pairs
        """
        self.variants = variants

    def detect(self, headers: Sequence[str]) -> MappingResult:
        """
        Resolve header names for every semantic role.

        Args:
            headers: Header strings exactly as they appear in the CSV

        Returns:
            ColumnMap on success, ColumnMappingFailed when the customer id,
            date or amount column cannot be found
        """
        headers = list(headers)
        normalized = [normalize_header(h) for h in headers]

        resolved = {}
        for role, variants in self.variants:
            match = self._first_match(normalized, variants)
            if match is None:
                continue
            index, variant = match
            if role == 'location':
                resolved[role] = LocationColumn(name=headers[index], type=variant)
            else:
                resolved[role] = headers[index]

        missing = tuple(role for role in REQUIRED_ROLES if not resolved.get(role))
        if missing:
            logger.warning(f"Column mapping failed, unresolved roles: {list(missing)}")
            return ColumnMappingFailed(reason=MAPPING_FAILED_MESSAGE, missing=missing)

        column_map = ColumnMap(**resolved)
        logger.info(f"Detected column mapping: {column_map.to_dict()}")
        return column_map

    @staticmethod
    def _first_match(
        normalized: List[str],
        variants: Sequence[str]
    ) -> Optional[Tuple[int, str]]:
        for variant in variants:
            if variant in normalized:
                return normalized.index(variant), variant
        return None
