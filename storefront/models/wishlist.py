# storefront/models/wishlist.py
from datetime import datetime

from storefront.extensions import db


class WishlistItem(db.Model):
    __tablename__ = "wishlist_items"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    product = db.relationship("Product", lazy="joined")

    __table_args__ = (db.UniqueConstraint("user_id", "product_id", name="uq_wishlist_user_product"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "product": self.product.to_dict() if self.product else None,
        }
