# storefront/models/catalog.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from storefront.extensions import db


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    slug = db.Column(db.String(140), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(220), unique=True, nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    price = db.Column(db.Numeric(10, 2), nullable=False)
    discount = db.Column(db.Numeric(5, 2), nullable=False, default=0)  # percent
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    images = db.Column(db.JSON, nullable=False, default=list)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=datetime.utcnow)

    category = db.relationship("Category", lazy="joined")

    @property
    def unit_price(self) -> Decimal:
        """Price after the percentage discount, rounded to cents."""
        price = Decimal(str(self.price or 0))
        pct = Decimal(str(self.discount or 0))
        return (price * (Decimal(100) - pct) / Decimal(100)).quantize(Decimal("0.01"))

    def snapshot(self) -> dict:
        # fields embedded in cart lines at add-time
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "images": list(self.images or []),
            "slug": self.slug,
            "stockQuantity": self.stock_quantity,
            "discount": float(self.discount or 0),
        }

    def to_dict(self) -> dict:
        data = self.snapshot()
        data.update({
            "description": self.description,
            "categoryId": self.category_id,
            "category": (
                {"name": self.category.name, "slug": self.category.slug}
                if self.category else None
            ),
            "sellerId": self.seller_id,
            "isActive": bool(self.is_active),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        })
        return data


collection_items = db.Table(
    "collection_items",
    db.Column("collection_id", db.Integer, db.ForeignKey("collections.id", ondelete="CASCADE"), primary_key=True),
    db.Column("product_id", db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)


class Collection(db.Model):
    """A seller-curated bundle of products."""

    __tablename__ = "collections"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=True)
    cover_image_url = db.Column(db.String(500), nullable=True)
    status = db.Column(db.String(20), nullable=False, default="draft")
    seller_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    products = db.relationship("Product", secondary=collection_items, lazy="select")
    seller = db.relationship("User", lazy="joined")

    def to_dict(self, with_products: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price) if self.price is not None else None,
            "coverImageUrl": self.cover_image_url,
            "status": self.status,
            "sellerId": self.seller_id,
            "sellerName": self.seller.name if self.seller else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if with_products:
            data["products"] = [p.snapshot() for p in self.products]
        return data
