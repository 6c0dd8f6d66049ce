from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
        }


class Size(db.Model):
    __tablename__ = "sizes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    value = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Size id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {"id": self.id, "store_id": self.store_id, "name": self.name, "value": self.value}


class Color(db.Model):
    __tablename__ = "colors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    value = db.Column(db.String(32), nullable=False)  # hex, e.g. "#000000"
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Color id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {"id": self.id, "store_id": self.store_id, "name": self.name, "value": self.value}


class Product(db.Model):
    """
    Product master data.

    Products are scoped to stores via store_id. A product owns its images
    and its variants; deleting the product deletes both.

    PRICE DESIGN DECISION:
    price is stored as a fixed-point decimal in the store's major currency
    unit. Conversion to minor units (cents) happens only at checkout, using
    Decimal arithmetic so no float rounding drift is possible.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_store_archived", "store_id", "is_archived"),
        db.Index("ix_products_store_category", "store_id", "category_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)

    is_featured = db.Column(db.Boolean, nullable=False, default=False)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("products", lazy=True))
    category = db.relationship("Category")
    images = db.relationship(
        "Image",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Image.id",
        lazy=True,
    )
    variants = db.relationship(
        "Variant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Variant.id",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self, *, variants: list["Variant"] | None = None, include_category: bool = False) -> dict:
        """
        Serialize the product with its images.

        variants: the variant rows to embed. Callers pass a filtered list
        (e.g. in-stock only); None embeds every variant.
        """
        if variants is None:
            variants = self.variants
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "category_id": self.category_id,
            "name": self.name,
            "price": str(self.price) if self.price is not None else None,
            "is_featured": self.is_featured,
            "is_archived": self.is_archived,
            "images": [i.to_dict() for i in self.images],
            "variants": [v.to_dict() for v in variants],
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_category:
            data["category"] = self.category.to_dict() if self.category else None
        return data


class Image(db.Model):
    __tablename__ = "images"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url = db.Column(db.String(1024), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", back_populates="images")

    def to_dict(self) -> dict:
        return {"id": self.id, "product_id": self.product_id, "url": self.url}


class Variant(db.Model):
    """
    A purchasable size/color/quantity combination of a product.

    LIFECYCLE:
    - Created when submitted without an id matching a live variant
    - Updated in place when its id matches a live variant
    - Archived (is_archived=True) when omitted from a later submission.
      Archived rows are never hard-deleted by reconciliation so order items
      keep pointing at a real row.

    quantity is the on-hand stock count and never goes below zero; checkout
    decrements it conditionally (quantity > 0).
    """
    __tablename__ = "variants"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_variants_quantity_non_negative"),
        db.Index("ix_variants_product_archived", "product_id", "is_archived"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    size_id = db.Column(db.Integer, db.ForeignKey("sizes.id"), nullable=False, index=True)
    color_id = db.Column(db.Integer, db.ForeignKey("colors.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", back_populates="variants")
    size = db.relationship("Size")
    color = db.relationship("Color")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<Variant id={self.id} product_id={self.product_id} size_id={self.size_id} "
            f"color_id={self.color_id} quantity={self.quantity} archived={self.is_archived}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "size_id": self.size_id,
            "color_id": self.color_id,
            "quantity": self.quantity,
            "is_archived": self.is_archived,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
