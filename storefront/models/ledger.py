# storefront/models/ledger.py
from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from storefront.extensions import db


class AccountType(str, enum.Enum):
    SAVINGS = "SAVINGS"
    CHECKING = "CHECKING"
    CREDIT = "CREDIT"
    CASH = "CASH"


class TransactionType(str, enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


def signed_amount(type_: str, amount) -> Decimal:
    """Balance effect of one transaction: INCOME adds, EXPENSE subtracts."""
    amt = Decimal(str(amount))
    return amt if type_ == TransactionType.INCOME.value else -amt


def _money(value) -> float | None:
    return float(value) if value is not None else None


class Account(db.Model):
    __tablename__ = "accounts"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(20), nullable=False)
    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    transactions = db.relationship("Transaction", back_populates="account", lazy="select")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "balance": _money(self.balance),
            "userId": self.user_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(10), nullable=False)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    description = db.Column(db.String(255), nullable=False, default="")
    date = db.Column(db.DateTime, nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    account = db.relationship("Account", back_populates="transactions")
    category = db.relationship("Category")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "amount": _money(self.amount),
            "description": self.description,
            "date": self.date.isoformat() if self.date else None,
            "categoryId": self.category_id,
            "accountId": self.account_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
