from __future__ import annotations

from ..extensions import db
from bevledger.time_utils import to_iso_date, to_utc_z, utcnow


FAMILY_MATERIAL = "material"
FAMILY_PRODUCT = "product"
FAMILIES = (FAMILY_MATERIAL, FAMILY_PRODUCT)

# Outflow reasons offered for raw materials
MATERIAL_OUTFLOW_REASONS = ("Damaged", "Sold", "Used in production")


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class TrackedItem(db.Model):
    """
    A stock-keeping item: a raw material or a finished beverage.

    Quantity on hand is never stored here. It is derived from the latest
    opening stock plus the inflow/outflow rows that follow it.
    """
    __tablename__ = "tracked_items"
    __table_args__ = (
        db.UniqueConstraint("family", "name", name="uq_tracked_items_family_name"),
        db.Index("ix_tracked_items_family_category", "family", "category_id"),
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    family = db.Column(db.String(16), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)
    unit = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<TrackedItem id={self.id} family={self.family} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "family": self.family,
            "category_id": self.category_id,
            "unit": self.unit,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OpeningStock(db.Model):
    """
    Manually declared balance snapshot for an item on a date.

    One per (item, date); the database constraint is the only guard.
    """
    __tablename__ = "opening_stocks"
    __table_args__ = (
        db.UniqueConstraint("item_id", "date", name="uq_opening_stocks_item_date"),
        db.CheckConstraint("quantity >= 0", name="ck_opening_stocks_quantity"),
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("tracked_items.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "date": to_iso_date(self.date),
            "quantity": self.quantity,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }


class StockInflow(db.Model):
    __tablename__ = "stock_inflows"
    __table_args__ = (
        db.Index("ix_stock_inflows_item_date", "item_id", "date"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_inflows_quantity"),
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("tracked_items.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    # Delivery, Production, Return, ...
    source = db.Column(db.String(120), nullable=False)
    delivery_id = db.Column(db.Integer, db.ForeignKey("deliveries.id"), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.String(120), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "type": "inflow",
            "date": to_iso_date(self.date),
            "quantity": self.quantity,
            "source": self.source,
            "delivery_id": self.delivery_id,
            "note": self.note,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class StockOutflow(db.Model):
    """Outflows store the unsigned magnitude; reconciliation subtracts it."""
    __tablename__ = "stock_outflows"
    __table_args__ = (
        db.Index("ix_stock_outflows_item_date", "item_id", "date"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_outflows_quantity"),
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("tracked_items.id"), nullable=False)
    date = db.Column(db.Date, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    # Sold, Damaged, Used in production, ...
    reason = db.Column(db.String(120), nullable=False)
    note = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.String(120), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "type": "outflow",
            "date": to_iso_date(self.date),
            "quantity": self.quantity,
            "reason": self.reason,
            "note": self.note,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
