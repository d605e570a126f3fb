"""DeliveryRecord SQLAlchemy model"""

from sqlalchemy import Column, Text, Index

from .base import Base, IdMixin, PortableJSONB, TimestampMixin


class DeliveryType:
    """Known delivery channels for an order."""
    API_DHD = "api_dhd"
    API_SOOK = "api_sook"
    LIVREUR = "livreur"  # closed manually by a delivery person

    CARRIER_TYPES = (API_DHD, API_SOOK)


class DeliveryRecord(IdMixin, TimestampMixin, Base):
    """Delivery metadata for one order of the tabular order store.

    Keyed by row_id, the stable address of the order row in the sheet.
    row_json keeps a snapshot of the order's free-text fields, used to
    find the product a delivered order consumed.
    """
    __tablename__ = "delivery_record"
    __table_args__ = (
        Index("ix_delivery_record_row_id", "row_id", unique=True),
        Index("ix_delivery_record_status", "status"),
    )

    row_id = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="new")
    tracking = Column(Text, nullable=True)
    delivery_type = Column(Text, nullable=False, default=DeliveryType.API_DHD)
    row_json = Column(PortableJSONB, nullable=False, default=dict)

    @property
    def reference(self):
        value = (self.row_json or {}).get("reference")
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    def to_dict(self):
        """Convert delivery record to dictionary representation"""
        return {
            "id": self.id,
            "row_id": self.row_id,
            "status": self.status,
            "tracking": self.tracking,
            "delivery_type": self.delivery_type,
            "row": self.row_json,
            **self.timestamps_dict(),
        }
