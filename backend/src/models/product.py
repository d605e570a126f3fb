"""Product SQLAlchemy models"""

from sqlalchemy import Column, Text, ForeignKey, Integer, Numeric, Index
from sqlalchemy.orm import relationship

from .base import Base, IdMixin, TimestampMixin


class Product(IdMixin, TimestampMixin, Base):
    """Catalog product; stock lives on its variants.

    Every product has at least one variant (``default`` when the product
    has no real variations).
    """
    __tablename__ = "product"
    __table_args__ = (
        Index("ix_product_code", "code"),
        Index("ix_product_name", "name"),
    )

    code = Column(Text, nullable=True)
    name = Column(Text, nullable=False)
    cost_price = Column(Numeric(precision=12, scale=2), nullable=False, default=0)
    sale_price = Column(Numeric(precision=12, scale=2), nullable=False, default=0)
    image = Column(Text, nullable=True)

    # Relationships
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.position",
    )

    def add_variant(self, name: str, quantity: int = 0) -> "ProductVariant":
        """Append a variant, keeping catalog order stable."""
        variant = ProductVariant(name=name, quantity=quantity, position=len(self.variants))
        self.variants.append(variant)
        return variant

    def to_dict(self):
        """Convert product to dictionary representation"""
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "cost_price": float(self.cost_price) if self.cost_price is not None else None,
            "sale_price": float(self.sale_price) if self.sale_price is not None else None,
            "image": self.image,
            "variants": [variant.to_dict() for variant in self.variants],
        }


class ProductVariant(IdMixin, Base):
    """Stock-holding variant of a product.

    quantity is signed: an over-sold variant legitimately goes negative.
    """
    __tablename__ = "product_variant"
    __table_args__ = (
        Index("ix_product_variant_product_id", "product_id"),
    )

    product_id = Column(Text, ForeignKey("product.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    position = Column(Integer, nullable=False, default=0)

    # Relationships
    product = relationship("Product", back_populates="variants")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
        }
