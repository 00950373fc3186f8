"""
Tenant-scoped lookups.

WHY: Every tenant-owned row carries company_id. Going through a scope
makes the company filter structural: a row of another company is simply
"not found", never readable by accident.

USAGE:
    products = TenantRepository(Product).for_company(company_id)
    product = products.get(product_id)            # NotFoundError if missing
    product = products.get(product_id, lock=True)  # SELECT ... FOR UPDATE
"""

from __future__ import annotations

from .extensions import db
from .errors import NotFoundError
from .models import Company
from .services.concurrency import lock_for_update


class TenantScope:
    def __init__(self, model, company_id: int, entity_name: str):
        self.model = model
        self.company_id = company_id
        self.entity_name = entity_name

    def query(self):
        return db.session.query(self.model).filter(self.model.company_id == self.company_id)

    def get(self, entity_id, *, lock: bool = False):
        if entity_id is None:
            raise NotFoundError(self.entity_name, entity_id)
        query = self.query().filter(self.model.id == entity_id)
        if lock:
            query = lock_for_update(query)
        row = query.first()
        if row is None:
            raise NotFoundError(self.entity_name, entity_id)
        return row

    def find(self, entity_id):
        """Like get(), but returns None instead of raising."""
        if entity_id is None:
            return None
        return self.query().filter(self.model.id == entity_id).first()

    def list(self, *filters, order_by=None, limit: int | None = None, offset: int = 0):
        query = self.query()
        for criterion in filters:
            query = query.filter(criterion)
        if order_by is None:
            order_by = self.model.id.asc()
        if isinstance(order_by, (list, tuple)):
            query = query.order_by(*order_by)
        else:
            query = query.order_by(order_by)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()


class TenantRepository:
    def __init__(self, model, entity_name: str | None = None):
        self.model = model
        self.entity_name = entity_name or model.__name__

    def for_company(self, company_id: int) -> TenantScope:
        return TenantScope(self.model, company_id, self.entity_name)


def require_company(company_id: int, *, active_only: bool = True) -> Company:
    """Resolve the tenant root. Inactive companies are treated as missing."""
    company = db.session.query(Company).filter_by(id=company_id).first()
    if not company or (active_only and not company.is_active):
        raise NotFoundError("Company", company_id)
    return company
