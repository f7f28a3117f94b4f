# storefront/services/notifications.py
from __future__ import annotations

from datetime import date, timedelta
from html import escape

import requests
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from storefront.extensions import db
from storefront.models.auth import AdminNotification, AdminPushToken

from .mailer import send_mail


def delivery_window(today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    return today + timedelta(days=3), today + timedelta(days=5)


def _order_bodies(order) -> tuple[str, str]:
    addr = order.shipping_address or {}
    start, end = delivery_window()
    window = f"{start:%Y-%m-%d} - {end:%Y-%m-%d}"
    total = f"{float(order.total_amount):.2f}"

    lines_txt = "\n".join(
        f"- {(i.product.name if i.product else 'Product')} x{i.quantity}" for i in order.items
    )
    lines_html = "".join(
        f"<li><b>{escape(i.product.name if i.product else 'Product')}</b> &times; {i.quantity}</li>"
        for i in order.items
    )
    where = " ".join(str(addr.get(k) or "") for k in ("street", "city", "country")).strip()

    text = (
        "Thank you for your order!\n\n"
        f"Order ID: {order.id}\n"
        f"Total: {total}\n\n"
        f"Items Ordered:\n{lines_txt}\n\n"
        f"Shipping Address:\n{where}\n\n"
        f"Estimated Delivery: {window}\n\n"
        "We will notify you when your order ships.\n\n"
        "If you have questions, reply to this email."
    )
    html = (
        "<h2>Thank you for your order!</h2>"
        f"<p><b>Order ID:</b> {escape(order.id)}<br/><b>Total:</b> {total}</p>"
        f"<h3>Items Ordered:</h3><ul>{lines_html}</ul>"
        f"<h3>Shipping Address:</h3><p>{escape(where)}</p>"
        f"<p><b>Estimated Delivery:</b> {window}</p>"
        "<p>We will notify you when your order ships.</p>"
    )
    return text, html


def send_order_confirmation(order) -> bool:
    """Email the shopper; returns False (and logs) instead of raising."""
    if not current_app.config.get("ORDER_MAIL_ENABLED", True):
        return False
    to = (order.shipping_address or {}).get("email")
    if not to:
        current_app.logger.info("order %s: no email on shipping address, confirmation skipped", order.id)
        return False
    text, html = _order_bodies(order)
    try:
        send_mail("Order Confirmation", to, body=text, html=html)
    except Exception as e:  # order is already committed
        current_app.logger.warning("order %s: confirmation email to %s failed: %s", order.id, to, e)
        return False
    current_app.logger.info("order %s: confirmation sent to %s", order.id, to)
    return True


def push_to_admins(title: str, body: str, data: dict | None = None) -> int:
    """Send an Expo push to every registered admin device. Returns the count."""
    tokens = [t.token for t in AdminPushToken.query.all()]
    if not tokens:
        return 0
    messages = [
        {"to": tok, "sound": "default", "title": title, "body": body, "data": data or {}}
        for tok in tokens
    ]
    resp = requests.post(
        current_app.config["EXPO_PUSH_URL"],
        json=messages,
        timeout=current_app.config.get("PUSH_TIMEOUT_SECONDS", 10),
    )
    resp.raise_for_status()
    return len(messages)


def notify_admins(type_: str, title: str, body: str, data: dict | None = None) -> tuple[AdminNotification, int]:
    """Store the notification, then push it. A failed push keeps the stored row."""
    note = AdminNotification(type=type_ or "general", title=title, body=body or "", data=data)
    db.session.add(note)
    db.session.commit()

    try:
        delivered = push_to_admins(title, body, data)
    except requests.RequestException as e:
        current_app.logger.warning("admin push for notification %s failed: %s", note.id, e)
        delivered = 0
    return note, delivered


def notify_new_order(order) -> None:
    try:
        notify_admins(
            "order",
            "New order",
            f"Order {order.id} for {float(order.total_amount):.2f}",
            {"orderId": order.id},
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.warning("order %s: admin notification not recorded: %s", order.id, e)
