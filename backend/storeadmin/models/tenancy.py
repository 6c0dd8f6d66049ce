from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Store(db.Model):
    """
    A storefront owned by a single dashboard user.

    Every product, order and catalog attribute is scoped to a store via
    store_id. Ownership (user_id) is the authorization boundary for all
    dashboard writes.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.Index("ix_stores_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    name = db.Column(db.String(120), nullable=False)

    # ISO-4217 code used for every checkout line item of this store
    currency = db.Column(db.String(3), nullable=False, default="AUD")

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("stores", lazy=True))

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r} user_id={self.user_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "currency": self.currency,
            "created_at": to_utc_z(self.created_at),
        }
