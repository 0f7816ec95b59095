"""
Checkout cart.

The cart only lives for the duration of one checkout request: it is built
from the request lines and the products' authoritative prices, validated,
and handed to the transaction writer. Nothing about it is persisted.

    line_total = unit_price * quantity - discount
    line_total = unit_price * weight   - discount   (weight-priced items)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from .money import multiply_cents, percent_of, to_quantity


class CartError(ValueError):
    """Raised when a cart line is invalid."""
    pass


@dataclass
class CartLine:
    product_id: int
    product_name: str
    product_sku: str
    unit_of_measure: str
    unit_price_cents: int
    quantity: Decimal
    discount_cents: int = 0
    weight_kg: Decimal | None = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise CartError(f"Quantity must be positive for product {self.product_id}")
        if self.weight_kg is not None and self.weight_kg <= 0:
            raise CartError(f"Weight must be positive for product {self.product_id}")
        if self.unit_price_cents < 0:
            raise CartError(f"Unit price cannot be negative for product {self.product_id}")
        if self.discount_cents < 0:
            raise CartError(f"Discount cannot be negative for product {self.product_id}")
        if self.discount_cents > self.gross_cents:
            raise CartError(
                f"Discount exceeds line amount for product {self.product_id}"
            )

    @property
    def is_weight_priced(self) -> bool:
        return self.weight_kg is not None

    @property
    def stock_quantity(self) -> Decimal:
        """Quantity that leaves the shelf: the weight for weight-priced lines."""
        return self.weight_kg if self.is_weight_priced else self.quantity

    @property
    def gross_cents(self) -> int:
        return multiply_cents(self.unit_price_cents, self.stock_quantity)

    @property
    def line_total_cents(self) -> int:
        return self.gross_cents - self.discount_cents

    def to_item_data(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product_sku": self.product_sku,
            "unit_of_measure": self.unit_of_measure,
            "quantity": self.quantity,
            "weight_kg": self.weight_kg,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "line_total_cents": self.line_total_cents,
        }


@dataclass
class Cart:
    lines: list[CartLine] = field(default_factory=list)

    def add(self, product, quantity=1, *, discount_cents: int = 0, weight_kg=None) -> CartLine:
        """
        Add a product. Adding a unit-priced product already in the cart bumps
        its quantity; weight-priced lines are always kept separate since each
        one is a distinct weighing.
        """
        if product.price_cents is None:
            raise CartError(f"Product {product.id} has no price")

        quantity = to_quantity(quantity)
        weight = to_quantity(weight_kg) if weight_kg is not None else None
        if product.is_weight_based and weight is None:
            raise CartError(f"Product {product.id} is sold by weight; weight_kg is required")

        if weight is None:
            for line in self.lines:
                if line.product_id == product.id and not line.is_weight_priced:
                    return self.update_quantity(
                        product.id,
                        line.quantity + quantity,
                        discount_cents=line.discount_cents + discount_cents,
                    )

        line = CartLine(
            product_id=product.id,
            product_name=product.name,
            product_sku=product.sku,
            unit_of_measure=product.unit_of_measure,
            unit_price_cents=product.price_cents,
            quantity=quantity,
            discount_cents=discount_cents,
            weight_kg=weight,
        )
        self.lines.append(line)
        return line

    def update_quantity(self, product_id: int, quantity, *, discount_cents: int | None = None) -> CartLine | None:
        """Set a unit-priced line's quantity. Zero or less removes the line."""
        quantity = to_quantity(quantity)
        for i, line in enumerate(self.lines):
            if line.product_id == product_id and not line.is_weight_priced:
                if quantity <= 0:
                    del self.lines[i]
                    return None
                new_line = CartLine(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    product_sku=line.product_sku,
                    unit_of_measure=line.unit_of_measure,
                    unit_price_cents=line.unit_price_cents,
                    quantity=quantity,
                    discount_cents=line.discount_cents if discount_cents is None else discount_cents,
                )
                self.lines[i] = new_line
                return new_line
        raise CartError(f"Product {product_id} is not in the cart")

    def remove(self, product_id: int) -> None:
        self.lines = [line for line in self.lines if line.product_id != product_id]

    def clear(self) -> None:
        self.lines = []

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def subtotal_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    @property
    def discount_cents(self) -> int:
        return sum(line.discount_cents for line in self.lines)

    def tax_cents(self, rate_bps: int) -> int:
        return percent_of(self.subtotal_cents, rate_bps)

    def total_cents(self, rate_bps: int) -> int:
        return self.subtotal_cents + self.tax_cents(rate_bps)
