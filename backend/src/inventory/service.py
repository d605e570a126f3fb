"""Stock adjuster for catalog variants.

Every adjustment is one conditional UPDATE on the variant row, filtered on
the value read just before, and applied as a relative change. Concurrent
adjustments therefore never lose each other's writes.
"""

import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from matching.catalog_matcher import match_variant
from models.product import Product, ProductVariant

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


class StockAdjustmentError(Exception):
    """Base exception for stock adjustments."""
    pass


class InvalidQuantityError(StockAdjustmentError):
    pass


class VariantNotFoundError(StockAdjustmentError):
    """The product has no variant with that name (or no longer exists)."""
    pass


class InsufficientStockError(StockAdjustmentError):
    """Guarded decrement refused: quantity on hand is below the request."""

    def __init__(self, variant_name: str, available: int, requested: int):
        self.variant_name = variant_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for variant '{variant_name}': {available} available, {requested} requested"
        )


class StockConflictError(StockAdjustmentError):
    """The variant kept changing under us; the adjustment was not applied."""
    pass


class StockAdjuster:
    """Atomic stock adjustments on product variants.

    Operations:
    - decrement_allow_negative: delivery flow, stock may go below zero
    - decrement_guarded: manual stock endpoint, refuses to go below zero
    - increment: reversal (return after delivery, failed downstream write)

    Each operation commits its own transaction and returns the variant's
    quantity after the update.
    """

    def __init__(self, db: Session, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.db = db
        self.max_attempts = max_attempts

    def _resolve_variant(self, product: Product, variant_name: str) -> ProductVariant:
        variant = match_variant(product.variants, variant_name)
        if variant is None:
            raise VariantNotFoundError(f"Variant '{variant_name}' not found on product {product.id}")
        return variant

    def _current_quantity(self, product_id: str, variant_id: str) -> Optional[int]:
        return (
            self.db.query(ProductVariant.quantity)
            .filter(ProductVariant.id == variant_id, ProductVariant.product_id == product_id)
            .scalar()
        )

    def _validate(self, quantity: int) -> None:
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise InvalidQuantityError(f"Quantity must be a positive integer, got {quantity!r}")

    def _apply_relative(self, product: Product, variant: ProductVariant, delta: int) -> int:
        """Compare-and-set the variant quantity by delta, retrying on races."""
        for attempt in range(1, self.max_attempts + 1):
            current = self._current_quantity(product.id, variant.id)
            if current is None:
                raise VariantNotFoundError(f"Variant {variant.id} no longer exists")

            result = self.db.execute(
                update(ProductVariant)
                .where(
                    ProductVariant.id == variant.id,
                    ProductVariant.product_id == product.id,
                    ProductVariant.quantity == current,
                )
                .values(quantity=ProductVariant.quantity + delta)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                self.db.commit()
                return current + delta

            self.db.rollback()
            logger.debug(f"Stock changed during adjustment, retrying (attempt {attempt})")

        raise StockConflictError(
            f"Variant {variant.id} changed concurrently {self.max_attempts} times; adjustment abandoned"
        )

    def decrement_allow_negative(self, product: Product, variant_name: str, quantity: int) -> int:
        """Decrement stock even if it ends up negative.

        Raises:
            InvalidQuantityError: If quantity is not a positive integer
            VariantNotFoundError: If the product has no such variant
            StockConflictError: If the row kept changing during the update
        """
        self._validate(quantity)
        variant = self._resolve_variant(product, variant_name)
        return self._apply_relative(product, variant, -quantity)

    def decrement_guarded(self, product: Product, variant_name: str, quantity: int) -> int:
        """Decrement stock only if enough is on hand.

        Raises:
            InvalidQuantityError: If quantity is not a positive integer
            VariantNotFoundError: If the product has no such variant
            InsufficientStockError: If quantity on hand is below the request
        """
        self._validate(quantity)
        variant = self._resolve_variant(product, variant_name)

        result = self.db.execute(
            update(ProductVariant)
            .where(
                ProductVariant.id == variant.id,
                ProductVariant.product_id == product.id,
                ProductVariant.quantity >= quantity,
            )
            .values(quantity=ProductVariant.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            self.db.commit()
            return self._current_quantity(product.id, variant.id)

        self.db.rollback()
        available = self._current_quantity(product.id, variant.id)
        if available is None:
            raise VariantNotFoundError(f"Variant {variant.id} no longer exists")
        raise InsufficientStockError(variant.name, available, quantity)

    def increment(self, product: Product, variant_name: str, quantity: int) -> int:
        """Add stock back unconditionally.

        Raises:
            InvalidQuantityError: If quantity is not a positive integer
            VariantNotFoundError: If the product has no such variant
        """
        self._validate(quantity)
        variant = self._resolve_variant(product, variant_name)

        result = self.db.execute(
            update(ProductVariant)
            .where(ProductVariant.id == variant.id, ProductVariant.product_id == product.id)
            .values(quantity=ProductVariant.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise VariantNotFoundError(f"Variant {variant.id} no longer exists")
        self.db.commit()
        return self._current_quantity(product.id, variant.id)

