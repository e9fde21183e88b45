"""Per-restaurant cart kept in a key-value storage (the session, in views).

The storage entry is the only source of truth. `CartStore` keeps a copy of
what it last read or wrote so `validate_cart_state` can tell when another
writer (a second tab, a concurrent request) changed the entry underneath it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, MutableMapping

from django.conf import settings

log = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def _clean_text(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _limits() -> dict:
    defaults = {"lines_per_cart": 50, "quantity_per_line": 99}
    return {**defaults, **(getattr(settings, "CART_LIMITS", None) or {})}


@dataclass
class CartItem:
    id: str
    name: str
    price: Decimal
    quantity: int = 1
    customizations: str | None = None
    special_instructions: str | None = None

    def __post_init__(self):
        self.id = str(self.id)
        self.price = Decimal(str(self.price)).quantize(TWO_PLACES)
        self.quantity = int(self.quantity)
        self.customizations = _clean_text(self.customizations)
        self.special_instructions = _clean_text(self.special_instructions)

    @property
    def line_key(self) -> tuple[str, str | None]:
        return (self.id, self.customizations)

    @property
    def line_total(self) -> Decimal:
        return (self.price * self.quantity).quantize(TWO_PLACES)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "quantity": self.quantity,
        }
        if self.customizations:
            data["customizations"] = self.customizations
        if self.special_instructions:
            data["special_instructions"] = self.special_instructions
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            price=data["price"],
            quantity=data.get("quantity", 1),
            customizations=data.get("customizations"),
            special_instructions=data.get("special_instructions"),
        )


@dataclass
class CartValidation:
    in_sync: bool
    items: list[CartItem] = field(default_factory=list)
    latest: list[CartItem] = field(default_factory=list)


class CartStore:
    def __init__(self, storage: MutableMapping, restaurant_id):
        self.storage = storage
        self.restaurant_id = str(restaurant_id)
        self.key = f"cart_{self.restaurant_id}"
        self._items: list[CartItem] = self.get_latest_cart_state()

    # storage access

    def get_latest_cart_state(self) -> list[CartItem]:
        """Read the lines straight from storage, skipping malformed entries."""
        try:
            raw = self.storage.get(self.key) or []
        except Exception:
            log.warning("[cart] storage read failed restaurant=%s", self.restaurant_id, exc_info=True)
            return []
        if not isinstance(raw, list):
            log.warning("[cart] discarding non-list cart restaurant=%s", self.restaurant_id)
            return []
        items = []
        for entry in raw:
            try:
                item = CartItem.from_dict(entry)
            except (KeyError, TypeError, ValueError, InvalidOperation):
                log.warning("[cart] dropping malformed line restaurant=%s entry=%r", self.restaurant_id, entry)
                continue
            if item.quantity > 0:
                items.append(item)
        return items

    def _write(self, items: list[CartItem]) -> bool:
        try:
            if items:
                self.storage[self.key] = [i.to_dict() for i in items]
            else:
                self.storage.pop(self.key, None)
        except Exception:
            log.warning("[cart] storage write failed restaurant=%s", self.restaurant_id, exc_info=True)
            return False
        self._items = items
        return True

    # mutations

    def add_to_cart(self, item: CartItem, quantity: int = 1) -> bool:
        if quantity < 1:
            return False
        limits = _limits()
        items = self.get_latest_cart_state()
        for line in items:
            if line.line_key == item.line_key:
                if line.quantity + quantity > limits["quantity_per_line"]:
                    log.info("[cart] quantity limit reached restaurant=%s item=%s", self.restaurant_id, item.id)
                    return False
                line.quantity += quantity
                if item.special_instructions:
                    line.special_instructions = item.special_instructions
                break
        else:
            if len(items) >= limits["lines_per_cart"] or quantity > limits["quantity_per_line"]:
                log.info("[cart] cart limit reached restaurant=%s lines=%s", self.restaurant_id, len(items))
                return False
            items.append(
                CartItem(
                    id=item.id,
                    name=item.name,
                    price=item.price,
                    quantity=quantity,
                    customizations=item.customizations,
                    special_instructions=item.special_instructions,
                )
            )
        return self._write(items)

    def update_quantity(self, item_id, quantity: int, customizations: str | None = None) -> bool:
        if quantity <= 0:
            return self.remove_from_cart(item_id, customizations)
        if quantity > _limits()["quantity_per_line"]:
            return False
        key = (str(item_id), _clean_text(customizations))
        items = self.get_latest_cart_state()
        for line in items:
            if line.line_key == key:
                line.quantity = int(quantity)
                return self._write(items)
        return False

    def remove_from_cart(self, item_id, customizations: str | None = None) -> bool:
        key = (str(item_id), _clean_text(customizations))
        items = self.get_latest_cart_state()
        remaining = [line for line in items if line.line_key != key]
        if len(remaining) == len(items):
            return False
        return self._write(remaining)

    def reset_cart(self) -> bool:
        return self._write([])

    # reads

    @property
    def cart_items(self) -> list[CartItem]:
        return list(self._items)

    def has_items(self) -> bool:
        return bool(self._items)

    def get_cart_count(self, items: Iterable[CartItem] | None = None) -> int:
        lines = self._items if items is None else items
        return sum(line.quantity for line in lines)

    def get_cart_total(self, items: Iterable[CartItem] | None = None) -> Decimal:
        lines = self._items if items is None else items
        total = sum((line.line_total for line in lines), Decimal("0.00"))
        return total.quantize(TWO_PLACES)

    def force_refresh(self) -> list[CartItem]:
        self._items = self.get_latest_cart_state()
        return self.cart_items

    def validate_cart_state(self) -> CartValidation:
        latest = self.get_latest_cart_state()
        in_sync = [i.to_dict() for i in self._items] == [i.to_dict() for i in latest]
        if not in_sync:
            log.info(
                "[cart] divergence restaurant=%s memory=%s storage=%s",
                self.restaurant_id,
                self.get_cart_count(),
                self.get_cart_count(latest),
            )
        return CartValidation(in_sync=in_sync, items=self.cart_items, latest=latest)

