# Overview: Lot inventory manager; every stock mutation of the clinic goes through here.

from __future__ import annotations

from datetime import date
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import InsufficientStockError, InvalidStateError, ValidationError
from ..models import Product, ProductLot, StockMovement
from ..models.inventory import BUCKET_LOT_NUMBER
from ..numbers import ZERO, is_whole, to_quantity
from ..repository import TenantRepository
"""
Lot Inventory Invariants (authoritative)

Stock model:
- On-hand stock is SUM(ProductLot.quantity) for the product.
- Lot-tracked products: every deduction names a lot id; lots that reach
  exactly zero are pruned. A restore recreates a pruned lot with its
  original id and snapshotted metadata (ids are never reused).
- Non-tracked products: one bucket lot (is_bucket=True, "N/A") that
  persists at zero. Lot ids sent by callers are ignored.
- SERVICE products hold no stock; deduct/restore are silent no-ops.

Business invariants:
- No lot quantity is ever negative.
- Quantities are > 0 and whole unless the product is divisible.
- Every mutation appends one StockMovement row in the same transaction.

Transactions:
- Nothing here commits. Callers run these helpers inside one unit of work
  (services.concurrency.run_in_transaction), so a failure on any line
  rolls back every line.
"""

REASON_INITIAL = "INITIAL"
REASON_PURCHASE = "PURCHASE"
REASON_SALE = "SALE"
REASON_SALE_RESTORE = "SALE_RESTORE"
REASON_CONSUMPTION = "CONSUMPTION"
REASON_MEDICATION = "MEDICATION"

MOVEMENT_REASONS = (
    REASON_INITIAL,
    REASON_PURCHASE,
    REASON_SALE,
    REASON_SALE_RESTORE,
    REASON_CONSUMPTION,
    REASON_MEDICATION,
)


def lock_product(company_id: int, product_id: int) -> Product:
    """Load a company's product with SELECT ... FOR UPDATE (NotFoundError otherwise)."""
    return TenantRepository(Product).for_company(company_id).get(product_id, lock=True)


def _check_quantity(product: Product, quantity) -> Decimal:
    qty = to_quantity(quantity)
    if qty <= ZERO:
        raise ValidationError(f"Quantity for {product.name} must be > 0")
    if not product.is_divisible and not is_whole(qty):
        raise ValidationError(
            f"{product.name} is not divisible; quantity must be a whole number",
            {"product_id": product.id, "quantity": str(qty)},
        )
    return qty


def _find_lot(product: Product, lot_id) -> ProductLot | None:
    for lot in product.lots:
        if lot.id == lot_id and not lot.is_bucket:
            return lot
    return None


def ensure_bucket(product: Product) -> ProductLot:
    bucket = product.bucket_lot
    if bucket is None:
        bucket = ProductLot(lot_number=BUCKET_LOT_NUMBER, quantity=ZERO, is_bucket=True)
        product.lots.append(bucket)
        db.session.flush()
    return bucket


def _record_movement(
    product: Product,
    lot: ProductLot,
    delta: Decimal,
    *,
    reason: str,
    reference_type: str | None,
    reference_id: int | None,
) -> StockMovement:
    movement = StockMovement(
        company_id=product.company_id,
        product_id=product.id,
        lot_id=lot.id,
        lot_number=lot.lot_number,
        quantity_delta=delta,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
    )
    db.session.add(movement)
    return movement


def _prune(product: Product, lot: ProductLot) -> None:
    # delete-orphan cascade removes the row on flush
    product.lots.remove(lot)
    db.session.flush()


def deduct_stock(
    product: Product,
    quantity,
    lot_id: int | None = None,
    *,
    reason: str = REASON_SALE,
    reference_type: str | None = None,
    reference_id: int | None = None,
) -> ProductLot | None:
    """
    Take `quantity` out of a product's stock.

    Returns the lot that was drawn from (already pruned if it reached zero;
    its id/number/expiration stay readable for snapshots), or None for
    SERVICE products.

    Raises:
        ValidationError: bad quantity, or no lot chosen for a tracked product
        InsufficientStockError: the lot (or bucket) holds less than requested
    """
    if product.is_service:
        return None

    qty = _check_quantity(product, quantity)

    if product.uses_lot_tracking:
        if lot_id is None:
            raise ValidationError(
                f"A lot must be selected for {product.name}",
                {"product_id": product.id},
            )
        lot = _find_lot(product, lot_id)
        if lot is None:
            raise InsufficientStockError(product.name, requested=qty, available=ZERO)
        available = Decimal(lot.quantity)
        if available < qty:
            raise InsufficientStockError(
                product.name, lot_number=lot.lot_number, requested=qty, available=available
            )
    else:
        lot = ensure_bucket(product)
        available = Decimal(lot.quantity)
        if available < qty:
            raise InsufficientStockError(product.name, requested=qty, available=available)

    lot.quantity = available - qty
    _record_movement(
        product, lot, -qty, reason=reason, reference_type=reference_type, reference_id=reference_id
    )

    if not lot.is_bucket and lot.quantity == ZERO:
        _prune(product, lot)
    else:
        db.session.flush()
    return lot


def consume_for_reason(
    product: Product,
    quantity,
    lot_id: int | None = None,
    *,
    reason: str,
    reference_type: str | None = None,
    reference_id: int | None = None,
) -> ProductLot | None:
    """Non-sale removal (internal consumption, medication). Same lot rules as a sale."""
    if reason not in (REASON_CONSUMPTION, REASON_MEDICATION):
        raise ValidationError(f"Unsupported consumption reason: {reason}")
    return deduct_stock(
        product,
        quantity,
        lot_id,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
    )


def restore_stock(
    product: Product,
    quantity,
    lot_id: int | None = None,
    lot_number: str | None = None,
    expiration_date: date | None = None,
    *,
    reason: str = REASON_SALE_RESTORE,
    reference_type: str | None = None,
    reference_id: int | None = None,
) -> ProductLot | None:
    """
    Put `quantity` back. Inverse of deduct_stock for the same (product, lot).

    A pruned lot is recreated under its original id with the snapshotted
    lot number and expiration date.
    """
    if product.is_service:
        return None

    qty = to_quantity(quantity)
    if qty <= ZERO:
        raise ValidationError(f"Quantity for {product.name} must be > 0")

    if product.uses_lot_tracking:
        if lot_id is None:
            raise ValidationError(
                f"Cannot restore {product.name} without a lot",
                {"product_id": product.id},
            )
        lot = _find_lot(product, lot_id)
        if lot is None:
            existing = db.session.get(ProductLot, lot_id)
            if existing is not None:
                raise InvalidStateError(
                    f"Lot {lot_id} belongs to another product",
                    {"lot_id": lot_id, "product_id": product.id},
                )
            lot = ProductLot(
                id=lot_id,
                lot_number=lot_number or BUCKET_LOT_NUMBER,
                quantity=ZERO,
                expiration_date=expiration_date,
                is_bucket=False,
            )
            product.lots.append(lot)
            db.session.flush()
            current_app.logger.info(
                "Recreated lot %s (%s) of product %s", lot_id, lot.lot_number, product.id
            )
    else:
        lot = ensure_bucket(product)

    lot.quantity = Decimal(lot.quantity) + qty
    _record_movement(
        product, lot, qty, reason=reason, reference_type=reference_type, reference_id=reference_id
    )
    db.session.flush()
    return lot


def receive_stock(
    product: Product,
    quantity,
    lot_number: str | None = None,
    expiration_date: date | None = None,
    *,
    reason: str = REASON_PURCHASE,
    reference_type: str | None = None,
    reference_id: int | None = None,
) -> ProductLot:
    """
    Incoming stock (purchase or initial stock).

    Tracked products get a new lot per receipt; non-tracked products add to
    their bucket.
    """
    if product.is_service:
        raise ValidationError(f"{product.name} is a service and holds no stock")

    qty = _check_quantity(product, quantity)

    if product.uses_lot_tracking:
        lot_number = (lot_number or "").strip()
        if not lot_number:
            raise ValidationError(
                f"lot_number is required for lot-tracked product {product.name}",
                {"product_id": product.id},
            )
        lot = ProductLot(
            lot_number=lot_number,
            quantity=qty,
            expiration_date=expiration_date,
            is_bucket=False,
        )
        product.lots.append(lot)
        db.session.flush()
    else:
        lot = ensure_bucket(product)
        lot.quantity = Decimal(lot.quantity) + qty
        db.session.flush()

    _record_movement(
        product, lot, qty, reason=reason, reference_type=reference_type, reference_id=reference_id
    )
    db.session.flush()
    return lot


def available_lots(product: Product) -> list[ProductLot]:
    """
    Lots with stock, soonest expiration first (FEFO), undated lots last.

    Advisory ordering for lot pickers; deductions always use the lot the
    caller names.
    """
    lots = [lot for lot in product.lots if Decimal(lot.quantity) > ZERO]
    return sorted(
        lots,
        key=lambda lot: (
            lot.expiration_date is None,
            lot.expiration_date or date.max,
            lot.id,
        ),
    )


def list_movements(company_id: int, product_id: int, limit: int = 200) -> list[StockMovement]:
    return (
        db.session.query(StockMovement)
        .filter(
            StockMovement.company_id == company_id,
            StockMovement.product_id == product_id,
        )
        .order_by(StockMovement.id.asc())
        .limit(max(1, min(limit, 1000)))
        .all()
    )
