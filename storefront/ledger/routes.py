# storefront/ledger/routes.py
from flask import jsonify
from flask_login import current_user

from storefront.auth.capabilities import Capability, requires
from storefront.models.catalog import Category
from storefront.utils.http import json_body

from . import ledger_bp
from . import services

_ledger = requires(Capability.MANAGE_LEDGER)


# ---- accounts ---------------------------------------------------------------

@ledger_bp.get("/accounts")
@_ledger
def accounts_list():
    accounts = services.list_accounts(current_user)
    return jsonify([a.to_dict() for a in accounts])


@ledger_bp.post("/accounts")
@_ledger
def accounts_create():
    account = services.create_account(current_user, json_body())
    return jsonify(account.to_dict()), 201


@ledger_bp.put("/accounts/<account_id>")
@_ledger
def accounts_update(account_id):
    account = services.update_account(current_user, account_id, json_body())
    return jsonify(account.to_dict())


@ledger_bp.delete("/accounts/<account_id>")
@_ledger
def accounts_delete(account_id):
    services.delete_account(current_user, account_id)
    return "", 204


# ---- transactions -----------------------------------------------------------

@ledger_bp.get("/accounts/<account_id>/transactions")
@_ledger
def transactions_list(account_id):
    txs = services.list_transactions(current_user, account_id)
    return jsonify([t.to_dict() for t in txs])


@ledger_bp.post("/transactions")
@_ledger
def transactions_create():
    tx = services.create_transaction(current_user, json_body())
    return jsonify(tx.to_dict()), 201


@ledger_bp.put("/transactions/<tx_id>")
@_ledger
def transactions_update(tx_id):
    tx = services.update_transaction(current_user, tx_id, json_body())
    return jsonify(tx.to_dict())


@ledger_bp.delete("/transactions/<tx_id>")
@_ledger
def transactions_delete(tx_id):
    services.delete_transaction(current_user, tx_id)
    return "", 204


@ledger_bp.get("/categories")
def categories_list():
    cats = Category.query.order_by(Category.name.asc()).all()
    return jsonify([c.to_dict() for c in cats])
