from __future__ import annotations

from ..extensions import db
from bevledger.time_utils import to_iso_date, to_utc_z, utcnow


class Expense(db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount_spent > 0", name="ck_expenses_amount"),
        db.Index("ix_expenses_category_date", "category", "date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    amount_spent = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(120), nullable=False)
    department = db.Column(db.String(120), nullable=True)
    item = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_iso_date(self.date),
            "amount_spent": self.amount_spent,
            "category": self.category,
            "department": self.department,
            "item": self.item,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
