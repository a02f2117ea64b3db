from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Mapped, relationship

from billsplit.extensions import db
from billsplit.models.base import BaseModel


class Bill(BaseModel):
    """One receipt's worth of items plus the metadata used to split it.

    Attributes:
        id: Globally unique bill identifier (UUID string)
        community_id: Community the bill belongs to; all lookups are scoped by it
        created_by: User id of the uploader
        created_at: Creation time in epoch milliseconds
        bill_name: Display name, defaulted from the merchant name
        currency: Display currency, always GBP
        exchange_rate_gbp_to_cny: Per-bill conversion rate used for display
        participants: User ids sharing the unclaimed items
        total: Bill total in GBP
        storage_path: Object-store path of the receipt image

    Notes:
        - Items are created in the same transaction as the bill and are deleted with it
    """

    __tablename__ = "bill"
    __table_args__ = {"comment": "Bills extracted from uploaded receipts, scoped to a community"}

    id: Mapped[str] = db.Column(db.String(36), primary_key=True, comment="UUID of the bill")
    community_id: Mapped[str] = db.Column(
        db.String(128), nullable=False, index=True, comment="Owning community identifier"
    )
    created_by: Mapped[str] = db.Column(db.String(128), nullable=False, comment="User id of the bill creator")
    created_at: Mapped[int] = db.Column(db.BigInteger, nullable=False, comment="Creation time in epoch milliseconds")
    bill_name: Mapped[str] = db.Column(db.String(255), nullable=False, comment="Display name of the bill")
    currency: Mapped[str] = db.Column(db.String(3), nullable=False, default="GBP", comment="Display currency")
    exchange_rate_gbp_to_cny: Mapped[Decimal] = db.Column(
        db.Numeric(12, 4, asdecimal=True),
        nullable=False,
        default=Decimal("9"),
        comment="GBP to CNY conversion rate, editable per bill",
    )
    participants: Mapped[List[str]] = db.Column(
        db.JSON, nullable=False, default=list, comment="User ids splitting the shared items"
    )
    total: Mapped[Decimal] = db.Column(
        db.Numeric(10, 2, asdecimal=True),
        nullable=False,
        default=Decimal("0.00"),
        comment="Bill total in GBP",
    )
    storage_path: Mapped[Optional[str]] = db.Column(
        db.String(1024), nullable=True, comment="Object-store path of the receipt image"
    )

    items: Mapped[List["BillItem"]] = relationship(
        "BillItem",
        back_populates="bill",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
        order_by="BillItem.position",
    )

    def __repr__(self) -> str:
        return f"<Bill {self.id} {self.bill_name!r} community={self.community_id}>"


class BillItem(BaseModel):
    """A single priced line on a bill, shared unless claimed."""

    __tablename__ = "bill_item"
    __table_args__ = {"comment": "Line items of a bill"}

    id: Mapped[str] = db.Column(db.String(32), primary_key=True, comment="Generated item key")
    bill_id: Mapped[str] = db.Column(
        db.String(36),
        db.ForeignKey("bill.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Parent bill",
    )
    position: Mapped[int] = db.Column(db.Integer, nullable=False, default=0, comment="Order on the receipt")
    name: Mapped[str] = db.Column(db.String(255), nullable=False)
    price: Mapped[Decimal] = db.Column(db.Numeric(10, 2, asdecimal=True), nullable=False)
    claimed_by: Mapped[Optional[str]] = db.Column(
        db.String(128), nullable=True, comment="User id of the claimer; NULL means shared"
    )

    bill: Mapped[Bill] = relationship("Bill", back_populates="items")

    @property
    def is_shared(self) -> bool:
        return self.claimed_by is None

    def __repr__(self) -> str:
        return f"<BillItem {self.id} {self.name!r} {self.price}>"
