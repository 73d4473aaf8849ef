"""
Fetched Rows

Plain records returned by an ``OrderSource``. They carry exactly the columns
the aggregations read and are independent of the storage backend.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Union

Amount = Union[Decimal, float, int, str, None]


@dataclass
class OrderRow:
    """One order in the reporting window"""
    id: str
    total_amount: Amount
    status: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime] = None
    payment_method: Optional[str] = None
    user_id: Optional[str] = None
    shipping_address: Optional[str] = None


@dataclass
class ProductRef:
    """Product as resolved through the order item's foreign key"""
    id: str
    name: Optional[str] = None
    sku: Optional[str] = None
    category: Optional[str] = None


@dataclass
class ProductSale:
    """Order item joined to its (possibly missing) product"""
    product_id: Optional[str]
    quantity: Optional[int]
    price: Amount
    product: Optional[ProductRef] = None


@dataclass
class UserRef:
    """Customer contact fields"""
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class CustomerOrder:
    """Order joined to its (possibly missing) user"""
    order: OrderRow
    user: Optional[UserRef] = None


@dataclass
class LineItem:
    """Order item as needed by the export"""
    order_id: str
    product_id: Optional[str]
    quantity: Optional[int]
    price: Amount


@dataclass
class ExportBundle:
    """Everything the export needs, fetched without per-row joins"""
    orders: List[OrderRow] = field(default_factory=list)
    items: Dict[str, List[LineItem]] = field(default_factory=dict)
    users: Dict[str, UserRef] = field(default_factory=dict)
    products: Dict[str, ProductRef] = field(default_factory=dict)
    truncated: bool = False
