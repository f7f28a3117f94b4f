# storefront/ledger/services.py
"""
Account balance maintenance.

Every transaction write adjusts its account's balance in the same database
transaction. The adjustment is issued as ``balance = balance + :delta`` so
the database evaluates it against the current row value; concurrent writers
against one account therefore never overwrite each other's delta.
"""
from __future__ import annotations

from datetime import timezone
from decimal import Decimal

from dateutil import parser as date_parser
from flask import current_app
from sqlalchemy import update

from storefront.errors import NotFoundError, ValidationError
from storefront.extensions import db
from storefront.models.catalog import Category
from storefront.models.ledger import (
    Account,
    AccountType,
    Transaction,
    TransactionType,
    signed_amount,
)
from storefront.utils.http import finite_number, positive_int

_ACCOUNT_TYPES = {t.value for t in AccountType}
_TX_TYPES = {t.value for t in TransactionType}


# ---- validation -------------------------------------------------------------

def _account_fields(data: dict) -> dict:
    name = data.get("name")
    type_ = data.get("type")
    balance = data.get("balance")
    if not name or not type_ or balance is None:
        raise ValidationError("All fields are required")
    bal = finite_number(balance)
    if bal is None:
        raise ValidationError("Balance must be a number")
    if type_ not in _ACCOUNT_TYPES:
        raise ValidationError("Invalid account type")
    return {"name": str(name).strip(), "type": type_, "balance": bal}


def _transaction_fields(data: dict) -> dict:
    required = ("type", "description", "date", "categoryId", "accountId")
    if any(not data.get(k) for k in required) or data.get("amount") is None:
        raise ValidationError("All fields are required")

    amount = finite_number(data.get("amount"))
    if amount is None:
        raise ValidationError("Amount must be a number")
    if data["type"] not in _TX_TYPES:
        raise ValidationError("Invalid transaction type")

    account_id = positive_int(data.get("accountId"))
    category_id = positive_int(data.get("categoryId"))
    if account_id is None or category_id is None:
        raise ValidationError("Invalid account or category ID")

    try:
        when = date_parser.isoparse(str(data["date"]))
    except (ValueError, OverflowError):
        raise ValidationError("Invalid date")
    if when.tzinfo is not None:
        # stored as naive UTC
        when = when.astimezone(timezone.utc).replace(tzinfo=None)

    return {
        "type": data["type"],
        "amount": amount,
        "description": str(data["description"]),
        "date": when,
        "account_id": account_id,
        "category_id": category_id,
    }


# ---- lookups ----------------------------------------------------------------

def _owned_account(user_id: int, account_id: int) -> Account:
    account = Account.query.filter_by(id=account_id, user_id=user_id).first()
    if not account:
        raise NotFoundError("Account not found")
    return account


def _owned_transaction(user_id: int, tx_id: int) -> Transaction:
    tx = (
        Transaction.query.join(Account)
        .filter(Transaction.id == tx_id, Account.user_id == user_id)
        .first()
    )
    if not tx:
        raise NotFoundError("Transaction not found")
    return tx


def _require_category(category_id: int) -> None:
    if db.session.get(Category, category_id) is None:
        raise NotFoundError("Category not found")


def apply_balance_delta(account_id: int, delta: Decimal) -> None:
    """Atomic in-database increment. NO COMMIT here; caller owns the transaction."""
    if not delta:
        return
    db.session.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(balance=Account.balance + delta)
        .execution_options(synchronize_session=False)
    )


# ---- accounts ---------------------------------------------------------------

def list_accounts(user) -> list[Account]:
    return (
        Account.query.filter_by(user_id=user.id)
        .order_by(Account.created_at.desc(), Account.id.desc())
        .all()
    )


def create_account(user, data: dict) -> Account:
    fields = _account_fields(data)
    account = Account(user_id=user.id, **fields)
    db.session.add(account)
    db.session.commit()
    current_app.logger.info("account %s created for user %s", account.id, user.id)
    return account


def update_account(user, account_id, data: dict) -> Account:
    aid = positive_int(account_id)
    if aid is None:
        raise ValidationError("Invalid account id")
    fields = _account_fields(data)
    account = _owned_account(user.id, aid)

    # the one path that writes a client-supplied balance (manual corrections)
    if Decimal(str(account.balance)) != fields["balance"]:
        current_app.logger.info(
            "account %s balance corrected %s -> %s", aid, account.balance, fields["balance"]
        )
    for k, v in fields.items():
        setattr(account, k, v)
    db.session.commit()
    return account


def delete_account(user, account_id) -> None:
    aid = positive_int(account_id)
    if aid is None:
        raise ValidationError("Invalid account id")
    account = _owned_account(user.id, aid)
    try:
        Transaction.query.filter_by(account_id=aid).delete(synchronize_session=False)
        db.session.delete(account)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info("account %s deleted with its transactions", aid)


# ---- transactions -----------------------------------------------------------

def list_transactions(user, account_id) -> list[Transaction]:
    aid = positive_int(account_id)
    if aid is None:
        raise ValidationError("Invalid account ID")
    _owned_account(user.id, aid)
    return (
        Transaction.query.filter(Transaction.account_id == aid)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .all()
    )


def create_transaction(user, data: dict) -> Transaction:
    fields = _transaction_fields(data)
    _owned_account(user.id, fields["account_id"])
    _require_category(fields["category_id"])

    try:
        tx = Transaction(**fields)
        db.session.add(tx)
        db.session.flush()
        apply_balance_delta(fields["account_id"], signed_amount(tx.type, tx.amount))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "transaction %s %s %s on account %s", tx.id, tx.type, tx.amount, tx.account_id
    )
    return tx


def update_transaction(user, tx_id, data: dict) -> Transaction:
    tid = positive_int(tx_id)
    if tid is None:
        raise ValidationError("Invalid transaction ID")
    fields = _transaction_fields(data)
    target = _owned_account(user.id, fields["account_id"])
    tx = _owned_transaction(user.id, tid)
    _require_category(fields["category_id"])

    old_account_id = tx.account_id
    old_effect = signed_amount(tx.type, tx.amount)
    new_effect = signed_amount(fields["type"], fields["amount"])

    try:
        for k, v in fields.items():
            setattr(tx, k, v)
        db.session.flush()
        if old_account_id == target.id:
            apply_balance_delta(target.id, new_effect - old_effect)
        else:
            # moved between accounts: undo on the old one, apply on the new one
            apply_balance_delta(old_account_id, -old_effect)
            apply_balance_delta(target.id, new_effect)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if old_account_id != target.id:
        current_app.logger.info(
            "transaction %s moved from account %s to %s", tid, old_account_id, target.id
        )
    return tx


def delete_transaction(user, tx_id) -> None:
    tid = positive_int(tx_id)
    if tid is None:
        raise ValidationError("Invalid transaction ID")
    tx = _owned_transaction(user.id, tid)
    account_id = tx.account_id
    reversal = -signed_amount(tx.type, tx.amount)

    try:
        db.session.delete(tx)
        apply_balance_delta(account_id, reversal)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info("transaction %s deleted, account %s adjusted by %s", tid, account_id, reversal)
