from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from vetclinic.numbers import quantity_to_json
from vetclinic.time_utils import to_utc_z, to_iso_date


CATEGORY_MEDICINE = "MEDICINE"
CATEGORY_FOOD = "FOOD"
CATEGORY_ACCESSORY = "ACCESSORY"
CATEGORY_SUPPLY = "SUPPLY"
CATEGORY_SERVICE = "SERVICE"

PRODUCT_CATEGORIES = [
    CATEGORY_MEDICINE,
    CATEGORY_FOOD,
    CATEGORY_ACCESSORY,
    CATEGORY_SUPPLY,
    CATEGORY_SERVICE,
]

BUCKET_LOT_NUMBER = "N/A"


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to companies via company_id.

    STOCK MODEL:
    - On-hand stock is the SUM of this product's lot quantities.
    - uses_lot_tracking=True: one ProductLot row per physical batch. Every
      deduction must name the lot explicitly.
    - uses_lot_tracking=False: exactly one bucket lot (is_bucket=True,
      lot_number "N/A") holds all stock and persists at zero.
    - SERVICE products carry no lots and are never stock-checked.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_company_name", "company_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(16), nullable=False, default=CATEGORY_MEDICINE, index=True)

    uses_lot_tracking = db.Column(db.Boolean, nullable=False, default=False)

    # Divisible items are consumed in sub-units (e.g., mL from a bottle)
    is_divisible = db.Column(db.Boolean, nullable=False, default=False)
    total_volume = db.Column(db.Numeric(12, 3), nullable=True)
    volume_unit = db.Column(db.String(16), nullable=True)

    # Authoritative storage in cents
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)
    # Default markdown applied when the product is billed (e.g., at discharge)
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=True)
    taxable = db.Column(db.Boolean, nullable=False, default=True)

    low_stock_threshold = db.Column(db.Numeric(12, 3), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    company = db.relationship("Company", backref=db.backref("products", lazy=True))
    lots = db.relationship(
        "ProductLot",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductLot.id",
        lazy="select",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} company_id={self.company_id}>"

    @property
    def is_service(self) -> bool:
        return self.category == CATEGORY_SERVICE

    @property
    def bucket_lot(self) -> "ProductLot | None":
        for lot in self.lots:
            if lot.is_bucket:
                return lot
        return None

    @property
    def on_hand(self) -> Decimal:
        return sum((Decimal(lot.quantity) for lot in self.lots), Decimal("0"))

    @property
    def is_low_stock(self) -> bool:
        if self.is_service:
            return False
        return self.on_hand <= Decimal(self.low_stock_threshold or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "uses_lot_tracking": self.uses_lot_tracking,
            "is_divisible": self.is_divisible,
            "total_volume": quantity_to_json(self.total_volume),
            "volume_unit": self.volume_unit,
            "sale_price_cents": self.sale_price_cents,
            "discount_percentage": quantity_to_json(self.discount_percentage),
            "taxable": self.taxable,
            "low_stock_threshold": quantity_to_json(self.low_stock_threshold),
            "on_hand": quantity_to_json(self.on_hand),
            "is_low_stock": self.is_low_stock,
            "lots": [lot.to_dict() for lot in self.lots],
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductLot(db.Model):
    """
    A batch of a product with its own quantity and optional expiration.

    Lot ids are never reused (sqlite_autoincrement / sequences), which lets a
    fully consumed and pruned lot be recreated under its original id when an
    invoice line that referenced it is restored.
    """
    __tablename__ = "product_lots"
    __table_args__ = (
        db.Index("ix_product_lots_product_expiration", "product_id", "expiration_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    lot_number = db.Column(db.String(64), nullable=False, default=BUCKET_LOT_NUMBER)
    quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    expiration_date = db.Column(db.Date, nullable=True)

    # Single stock holder for products without lot tracking
    is_bucket = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", back_populates="lots")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "lot_number": self.lot_number,
            "quantity": quantity_to_json(self.quantity),
            "expiration_date": to_iso_date(self.expiration_date),
            "is_bucket": self.is_bucket,
        }


class StockMovement(db.Model):
    """
    Append-only journal of stock mutations.

    WHY: Lots hold the current quantity; this journal explains how it got
    there. One row per deduct/restore/receive, signed quantity_delta.

    IMMUTABLE: Rows are never updated or deleted.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        db.Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    # Lot id/number snapshot (the lot row may be pruned later)
    lot_id = db.Column(db.Integer, nullable=True)
    lot_number = db.Column(db.String(64), nullable=True)

    quantity_delta = db.Column(db.Numeric(12, 3), nullable=False)

    # INITIAL, PURCHASE, SALE, SALE_RESTORE, CONSUMPTION, MEDICATION
    reason = db.Column(db.String(32), nullable=False, index=True)
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "product_id": self.product_id,
            "lot_id": self.lot_id,
            "lot_number": self.lot_number,
            "quantity_delta": quantity_to_json(self.quantity_delta),
            "reason": self.reason,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "contact_person": self.contact_person,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "created_at": to_utc_z(self.created_at),
        }


class Purchase(db.Model):
    """Stock received from a supplier. Creates a lot (tracked) or tops up the bucket."""
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    # Denormalized for display of historical documents
    product_name = db.Column(db.String(255), nullable=False)
    supplier_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)

    lot_id = db.Column(db.Integer, nullable=True)
    lot_number = db.Column(db.String(64), nullable=True)
    expiration_date = db.Column(db.Date, nullable=True)

    purchased_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "product_id": self.product_id,
            "supplier_id": self.supplier_id,
            "product_name": self.product_name,
            "supplier_name": self.supplier_name,
            "quantity": quantity_to_json(self.quantity),
            "purchase_price_cents": self.purchase_price_cents,
            "lot_id": self.lot_id,
            "lot_number": self.lot_number,
            "expiration_date": to_iso_date(self.expiration_date),
            "purchased_at": to_utc_z(self.purchased_at),
        }


class InternalConsumption(db.Model):
    """
    Non-sale stock removal (internal use, waste, expired, damaged).

    Same lot rules as a sale; produces no invoice.
    """
    __tablename__ = "internal_consumptions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    lot_id = db.Column(db.Integer, nullable=True)
    lot_number = db.Column(db.String(64), nullable=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    recorded_by = db.Column(db.String(255), nullable=True)

    consumed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "lot_id": self.lot_id,
            "lot_number": self.lot_number,
            "quantity": quantity_to_json(self.quantity),
            "reason": self.reason,
            "recorded_by": self.recorded_by,
            "consumed_at": to_utc_z(self.consumed_at),
        }
