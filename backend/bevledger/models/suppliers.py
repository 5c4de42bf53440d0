from __future__ import annotations

from ..extensions import db
from bevledger.time_utils import to_iso_date, to_utc_z, utcnow


class Supplier(db.Model):
    __tablename__ = "suppliers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, unique=True)
    contact_name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class SupplyItem(db.Model):
    """
    A purchase of a material from a supplier.

    Paid-for quantity that has not been delivered yet is "prepaid" stock.
    """
    __tablename__ = "supply_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_supply_items_quantity"),
        db.CheckConstraint("amount_paid >= 0", name="ck_supply_items_amount_paid"),
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("tracked_items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Integer, nullable=False)
    amount_paid = db.Column(db.Integer, nullable=False, default=0)
    purchase_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    @property
    def total_cost(self) -> int:
        return self.unit_price * self.quantity

    @property
    def balance(self) -> int:
        return self.total_cost - (self.amount_paid or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "amount_paid": self.amount_paid,
            "total_cost": self.total_cost,
            "balance": self.balance,
            "purchase_date": to_iso_date(self.purchase_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class Delivery(db.Model):
    __tablename__ = "deliveries"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_deliveries_quantity"),
    )

    id = db.Column(db.Integer, primary_key=True)
    supply_item_id = db.Column(db.Integer, db.ForeignKey("supply_items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supply_item_id": self.supply_item_id,
            "quantity": self.quantity,
            "date": to_iso_date(self.date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
