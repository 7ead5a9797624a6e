"""Cart aggregate: the customer's pre-bill across every shop.

Lines are unique by product. A line's unit price is a snapshot taken when the
product is first added and is never re-read from the catalog afterwards;
adding more of the same product reuses the stored price.
"""

from decimal import Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Decimal as DecimalField
from protean.fields import HasMany, Identifier, Integer, String

from prebill.catalog.models import Product
from prebill.domain import prebill


@prebill.entity(part_of="Cart")
class CartLine:
    """One product in the cart with its quantity and price snapshot."""

    product_ref = Identifier(required=True)
    shop_ref = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = DecimalField(required=True, min_value=0)
    # Display snapshot, never used for totals
    name = String(max_length=255, sanitize=False)
    unit = String(max_length=50, sanitize=False)

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@prebill.aggregate
class Cart:
    session_id = Identifier(identifier=True)
    lines = HasMany(CartLine)

    @invariant.post
    def lines_must_have_a_shop(self):
        missing = [line.product_ref for line in self.lines if not line.shop_ref]
        if missing:
            raise ValidationError({"lines": [f"Product {ref} has no shop" for ref in missing]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, session_id, lines=None):
        # Lines are always passed; an unset association is looked up through a provider
        return cls(session_id=str(session_id), lines=list(lines or []))

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def line_for(self, product_ref) -> CartLine | None:
        return next((line for line in self.lines if line.product_ref == str(product_ref)), None)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        """Total number of units across all lines."""
        return sum(line.quantity for line in self.lines)

    def grand_total(self) -> Decimal:
        return sum((line.subtotal for line in self.lines), Decimal("0"))

    def shop_refs(self) -> list[str]:
        """Distinct shops in first-seen order."""
        return list(dict.fromkeys(line.shop_ref for line in self.lines))

    # -------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------
    def add(self, product: Product, quantity: int | None) -> CartLine | None:
        """Add a product, or increase the quantity of its existing line.

        A missing or non-positive quantity leaves the cart untouched.
        """
        if not quantity or quantity <= 0:
            return None

        existing = self.line_for(product.id)
        if existing:
            existing.quantity += quantity
            return existing

        line = CartLine(
            product_ref=str(product.id),
            shop_ref=str(product.shop_ref),
            quantity=quantity,
            unit_price=product.price,
            name=product.name,
            unit=product.unit,
        )
        self.add_lines(line)
        return line

    def set_quantity(self, product_ref, quantity: int) -> CartLine | None:
        """Set a line's quantity; zero or less removes the line."""
        line = self.line_for(product_ref)
        if line is None:
            return None

        if quantity <= 0:
            self.remove(product_ref)
            return None

        line.quantity = quantity
        return line

    def remove(self, product_ref) -> bool:
        line = self.line_for(product_ref)
        if line is None:
            return False
        self.remove_lines(line)
        return True

    def remove_shop(self, shop_ref) -> int:
        """Remove every line belonging to one shop; returns the number removed."""
        doomed = [line for line in self.lines if line.shop_ref == str(shop_ref)]
        if doomed:
            self.remove_lines(doomed)
        return len(doomed)

    def clear(self) -> None:
        if self.lines:
            self.remove_lines(list(self.lines))
