from __future__ import annotations

from ..extensions import db
from bevledger.time_utils import to_iso_date, to_utc_z, utcnow


ORDER_STATUSES = ("pending", "confirmed", "delivered", "cancelled")

PAYMENT_MODE_CASH = "Cash"
PAYMENT_MODE_BANK = "Bank"
PAYMENT_MODE_MOBILE = "Mobile Money"
PAYMENT_MODES = (PAYMENT_MODE_CASH, PAYMENT_MODE_BANK, PAYMENT_MODE_MOBILE)
MOBILE_PROVIDERS = ("MTN", "Airtel")


class Marketer(db.Model):
    """A field marketer who places orders and pays for them."""
    __tablename__ = "marketers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
        }


class Order(db.Model):
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_marketer_date", "marketer_id", "order_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    marketer_id = db.Column(db.Integer, db.ForeignKey("marketers.id"), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    total_amount = db.Column(db.Integer, nullable=False, default=0)
    order_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "marketer_id": self.marketer_id,
            "status": self.status,
            "total_amount": self.total_amount,
            "order_date": to_iso_date(self.order_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class OrderLine(db.Model):
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_lines_quantity"),
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("tracked_items.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "item_id": self.item_id,
            "quantity": self.quantity,
        }


class Payment(db.Model):
    """Money received, optionally against an order."""
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount_paid > 0", name="ck_payments_amount"),
    )

    id = db.Column(db.Integer, primary_key=True)
    marketer_id = db.Column(db.Integer, db.ForeignKey("marketers.id"), nullable=True, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    amount_paid = db.Column(db.Integer, nullable=False)
    mode_of_payment = db.Column(db.String(32), nullable=False)
    bank_name = db.Column(db.String(120), nullable=True)
    mobile_provider = db.Column(db.String(32), nullable=True)
    purpose = db.Column(db.String(255), nullable=True)
    paid_on = db.Column(db.Date, nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "marketer_id": self.marketer_id,
            "order_id": self.order_id,
            "amount_paid": self.amount_paid,
            "mode_of_payment": self.mode_of_payment,
            "bank_name": self.bank_name,
            "mobile_provider": self.mobile_provider,
            "purpose": self.purpose,
            "paid_on": to_iso_date(self.paid_on),
            "created_at": to_utc_z(self.created_at),
        }
