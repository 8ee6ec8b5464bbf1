"""Command catalog for the POS voice commands.

The catalog is scanned in declaration order and the first trigger phrase
found in a transcript wins, so the order of ``CATALOG`` is part of its
behaviour. "khách hàng mới" is declared after "thanh toán", for example, so
"thanh toán cho khách hàng mới" is a payment command.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple


class ActionKind(str, Enum):
    ADD_PRODUCT = "ADD_PRODUCT"
    SEARCH_PRODUCT = "SEARCH_PRODUCT"
    REMOVE_PRODUCT = "REMOVE_PRODUCT"
    PROCESS_PAYMENT = "PROCESS_PAYMENT"
    PRINT_RECEIPT = "PRINT_RECEIPT"
    NEW_CUSTOMER = "NEW_CUSTOMER"
    APPLY_DISCOUNT = "APPLY_DISCOUNT"
    CANCEL_ORDER = "CANCEL_ORDER"
    UNKNOWN = "UNKNOWN"


class Category(str, Enum):
    PRODUCT = "product"
    CART = "cart"
    PAYMENT = "payment"
    NAVIGATION = "navigation"
    CUSTOMER = "customer"


CATEGORY_LABELS: Dict[Category, str] = {
    Category.PRODUCT: "Sản phẩm",
    Category.CART: "Giỏ hàng",
    Category.PAYMENT: "Thanh toán",
    Category.CUSTOMER: "Khách hàng",
    Category.NAVIGATION: "Điều hướng",
}


@dataclass(frozen=True)
class Intent:
    trigger_phrase: str
    action: ActionKind
    category: Category
    description: str
    example: str

    def __post_init__(self) -> None:
        if not self.trigger_phrase.strip():
            raise ValueError("trigger phrase must not be empty")
        if self.trigger_phrase != self.trigger_phrase.lower():
            raise ValueError(f"trigger phrase must be lowercase: {self.trigger_phrase!r}")
        if self.action is ActionKind.UNKNOWN:
            raise ValueError("UNKNOWN is not a catalog action")

    def to_dict(self) -> dict:
        return {
            "command": self.trigger_phrase,
            "action": self.action.value,
            "category": self.category.value,
            "description": self.description,
            "example": self.example,
        }


CATALOG: Tuple[Intent, ...] = (
    Intent("thêm sản phẩm", ActionKind.ADD_PRODUCT, Category.PRODUCT,
           "Thêm sản phẩm vào giỏ hàng", "Thêm sản phẩm iPhone 15"),
    Intent("tìm kiếm", ActionKind.SEARCH_PRODUCT, Category.PRODUCT,
           "Tìm kiếm sản phẩm", "Tìm kiếm laptop Dell"),
    Intent("xóa sản phẩm", ActionKind.REMOVE_PRODUCT, Category.CART,
           "Xóa sản phẩm khỏi giỏ hàng", "Xóa sản phẩm số 1"),
    Intent("thanh toán", ActionKind.PROCESS_PAYMENT, Category.PAYMENT,
           "Xử lý thanh toán", "Thanh toán bằng tiền mặt"),
    Intent("in hóa đơn", ActionKind.PRINT_RECEIPT, Category.PAYMENT,
           "In hóa đơn", "In hóa đơn cho khách hàng"),
    Intent("khách hàng mới", ActionKind.NEW_CUSTOMER, Category.CUSTOMER,
           "Tạo khách hàng mới", "Khách hàng mới tên Nguyễn Văn A"),
    Intent("giảm giá", ActionKind.APPLY_DISCOUNT, Category.CART,
           "Áp dụng giảm giá", "Giảm giá 10 phần trăm"),
    Intent("hủy đơn hàng", ActionKind.CANCEL_ORDER, Category.CART,
           "Hủy đơn hàng hiện tại", "Hủy đơn hàng này"),
)


def find_intent(action: ActionKind, catalog: Tuple[Intent, ...] = CATALOG) -> Intent:
    for intent in catalog:
        if intent.action is action:
            return intent
    raise KeyError(action)


def commands_by_category(catalog: Tuple[Intent, ...] = CATALOG) -> Dict[Category, List[Intent]]:
    """Group intents by category for the help screen, keeping catalog order."""
    grouped: Dict[Category, List[Intent]] = {}
    for intent in catalog:
        grouped.setdefault(intent.category, []).append(intent)
    return grouped
