# Overview: Ownership-scoped record store; one repository shape for products, customers and sales.

"""
Ownership-Scoped Record Store

Every read, update and delete is filtered on owner_id inside the repository,
so a route cannot forget the predicate. Mutations are single statements:

- update/delete: `... WHERE id = :id AND owner_id = :owner`; zero rows
  affected means NotFoundError, whether the row is missing or foreign
- create: plain INSERT; uniqueness (products.sku) is left to the database
  constraint and its IntegrityError is translated
- bulk upsert: `INSERT ... ON CONFLICT (sku) DO UPDATE ... WHERE owner_id`,
  so a SKU held by another user is never overwritten

Repositories are built around an explicit session (see `products(session)`)
so tests and routes decide which session they run against.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Customer, Product, Sale
from ..models.inventory import DEFAULT_LOW_STOCK_THRESHOLD, stock_status
from ..time_utils import utcnow
from ..validation import (
    DuplicateSku,
    RecordPolicy,
    ValidationError,
    validate_payload,
)


class NotFoundError(Exception):
    """Entity does not exist or belongs to someone else (answered with 404)."""


class StoreError(Exception):
    """Underlying storage failure. Details stay in the server log."""


PRODUCT_POLICY = RecordPolicy(
    writable_fields=frozenset({"name", "category", "sku", "stock", "price", "cost", "supplier"}),
    required_on_create=frozenset({"name", "category", "sku", "stock", "price", "cost"}),
    non_negative=frozenset({"stock", "price", "cost"}),
    server_managed=frozenset({"id", "owner_id", "user_id", "status", "last_updated"}),
)

CUSTOMER_POLICY = RecordPolicy(
    writable_fields=frozenset({"name", "email", "phone", "address"}),
    required_on_create=frozenset({"name"}),
    server_managed=frozenset({"id", "owner_id", "user_id", "created_at"}),
)

SALE_POLICY = RecordPolicy(
    writable_fields=frozenset({"product_id", "customer_id", "quantity", "price", "sale_date"}),
    required_on_create=frozenset({"quantity", "price"}),
    non_negative=frozenset({"quantity", "price"}),
    server_managed=frozenset({"id", "owner_id", "user_id", "total"}),
)


T = TypeVar("T", Product, Customer, Sale)


class OwnedRepository(Generic[T]):
    """CRUD for one owned model. Subclasses hook create/update preparation."""

    model: type[T]
    policy: RecordPolicy
    order_column: str

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # hooks
    # ------------------------------------------------------------------

    def _prepare_create(self, owner_id: int, patch: dict) -> dict:
        return patch

    def _prepare_update(self, owner_id: int, entity_id: int, patch: dict) -> dict:
        return patch

    def _translate_integrity_error(self, exc: IntegrityError) -> Exception:
        return StoreError("Database error")

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def _owned(self, owner_id: int):
        return select(self.model).where(self.model.owner_id == owner_id)

    def list_by_owner(self, owner_id: int) -> list[T]:
        """The caller's rows, most recently updated/created first."""
        order_col = getattr(self.model, self.order_column)
        stmt = self._owned(owner_id).order_by(order_col.desc(), self.model.id.desc())
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise StoreError("Database error") from e

    def get(self, owner_id: int, entity_id: int) -> T:
        stmt = (
            self._owned(owner_id)
            .where(self.model.id == entity_id)
            .execution_options(populate_existing=True)
        )
        try:
            entity = self.session.scalars(stmt).first()
        except SQLAlchemyError as e:
            raise StoreError("Database error") from e
        if entity is None:
            raise NotFoundError(f"{self.model.__name__} not found")
        return entity

    def exists(self, owner_id: int, entity_id: int) -> bool:
        try:
            self.get(owner_id, entity_id)
        except NotFoundError:
            return False
        return True

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------

    def create(self, owner_id: int, fields: Any) -> T:
        patch = validate_payload(model=self.model, payload=fields, policy=self.policy, partial=False)
        patch = self._prepare_create(owner_id, patch)

        entity = self.model(owner_id=owner_id, **patch)
        self.session.add(entity)
        self._commit()
        return entity

    def update(self, owner_id: int, entity_id: int, fields: Any) -> T:
        patch = validate_payload(model=self.model, payload=fields, policy=self.policy, partial=True)
        values = self._prepare_update(owner_id, entity_id, patch)

        if not values:
            return self.get(owner_id, entity_id)

        stmt = (
            update(self.model)
            .where(self.model.id == entity_id, self.model.owner_id == owner_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self._execute(stmt)
        if result.rowcount == 0:
            self.session.rollback()
            raise NotFoundError(f"{self.model.__name__} not found")
        self._commit()
        return self.get(owner_id, entity_id)

    def delete(self, owner_id: int, entity_id: int) -> None:
        stmt = (
            delete(self.model)
            .where(self.model.id == entity_id, self.model.owner_id == owner_id)
            .execution_options(synchronize_session=False)
        )
        result = self._execute(stmt)
        if result.rowcount == 0:
            self.session.rollback()
            raise NotFoundError(f"{self.model.__name__} not found")
        self._commit()

    # ------------------------------------------------------------------
    # session plumbing
    # ------------------------------------------------------------------

    def _execute(self, stmt):
        try:
            return self.session.execute(stmt)
        except IntegrityError as e:
            self.session.rollback()
            raise self._translate_integrity_error(e) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Database error") from e

    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise self._translate_integrity_error(e) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Database error") from e


@dataclass
class ImportSummary:
    """Outcome of a bulk upsert; serialized with the keys the dashboard reads."""
    total_rows: int = 0
    success_count: int = 0
    error_count: int = 0
    errors: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalRows": self.total_rows,
            "successCount": self.success_count,
            "errorCount": self.error_count,
            "errors": self.errors,
        }


MAX_REPORTED_ROW_ERRORS = 50


class ProductRepository(OwnedRepository[Product]):
    model = Product
    policy = PRODUCT_POLICY
    order_column = "last_updated"

    def __init__(self, session: Session, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD):
        super().__init__(session)
        self.low_stock_threshold = low_stock_threshold

    def _prepare_create(self, owner_id: int, patch: dict) -> dict:
        patch["status"] = stock_status(patch["stock"], self.low_stock_threshold)
        patch["last_updated"] = utcnow()
        return patch

    def _prepare_update(self, owner_id: int, entity_id: int, patch: dict) -> dict:
        if not patch:
            return patch
        if "stock" in patch:
            patch["status"] = stock_status(patch["stock"], self.low_stock_threshold)
        patch["last_updated"] = utcnow()
        return patch

    def _translate_integrity_error(self, exc: IntegrityError) -> Exception:
        if "sku" in str(exc.orig).lower():
            return DuplicateSku()
        return StoreError("Database error")

    def _upsert_statement(self, owner_id: int, patch: dict):
        dialect = self.session.get_bind().dialect.name
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        elif dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            raise StoreError(f"Bulk import is not supported on {dialect}")

        values = {
            "owner_id": owner_id,
            "supplier": None,
            **patch,
            "status": stock_status(patch["stock"], self.low_stock_threshold),
            "last_updated": utcnow(),
        }
        stmt = insert(Product).values(**values)
        replace_cols = ("name", "category", "stock", "price", "cost", "supplier", "status", "last_updated")
        return (
            stmt.on_conflict_do_update(
                index_elements=[Product.sku],
                set_={col: getattr(stmt.excluded, col) for col in replace_cols},
                where=(Product.owner_id == owner_id),
            )
            .returning(Product.id)
        )

    def _upsert_row(self, owner_id: int, raw: dict) -> str | None:
        """Insert or replace one row. Returns an error message, or None on success."""
        row = {
            k.strip(): v
            for k, v in raw.items()
            if isinstance(k, str) and k.strip() in PRODUCT_POLICY.writable_fields
        }
        try:
            patch = validate_payload(model=Product, payload=row, policy=PRODUCT_POLICY, partial=False)
        except ValidationError as e:
            return str(e)

        try:
            product_id = self.session.execute(self._upsert_statement(owner_id, patch)).scalar_one_or_none()
        except IntegrityError:
            self.session.rollback()
            return "Row violates a database constraint"
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("Database error") from e

        if product_id is None:
            # ON CONFLICT matched a row owned by another user; nothing written
            self.session.rollback()
            return "SKU already exists"

        self._commit()
        return None

    def bulk_upsert(self, owner_id: int, rows: Iterable[dict]) -> ImportSummary:
        """
        Insert-or-replace product rows keyed by SKU, one row at a time.

        A bad row never aborts the batch; it is counted and reported. Each
        good row is committed on its own, so earlier rows survive later
        failures. Counts are reduced from the per-row outcomes.
        """
        outcomes: list[tuple[int, str | None]] = []
        for row_number, raw in enumerate(rows, start=1):
            if not isinstance(raw, dict):
                outcomes.append((row_number, "Row is not a record"))
                continue
            outcomes.append((row_number, self._upsert_row(owner_id, raw)))

        failures = [(n, err) for n, err in outcomes if err is not None]
        return ImportSummary(
            total_rows=len(outcomes),
            success_count=len(outcomes) - len(failures),
            error_count=len(failures),
            errors=[{"row": n, "error": err} for n, err in failures[:MAX_REPORTED_ROW_ERRORS]],
        )

    def recompute_status(self, owner_id: int | None = None) -> int:
        """Re-derive stored status from stock; returns rows changed."""
        stmt = select(Product)
        if owner_id is not None:
            stmt = stmt.where(Product.owner_id == owner_id)
        changed = 0
        for product in self.session.scalars(stmt):
            expected = stock_status(product.stock, self.low_stock_threshold)
            if product.status != expected:
                product.status = expected
                changed += 1
        self._commit()
        return changed


class CustomerRepository(OwnedRepository[Customer]):
    model = Customer
    policy = CUSTOMER_POLICY
    order_column = "created_at"


class SaleRepository(OwnedRepository[Sale]):
    model = Sale
    policy = SALE_POLICY
    order_column = "sale_date"

    def _check_links(self, owner_id: int, patch: dict) -> None:
        """Linked product/customer, when given, must belong to the same owner."""
        bad = []
        if patch.get("product_id") is not None and not ProductRepository(self.session).exists(owner_id, patch["product_id"]):
            bad.append("product_id")
        if patch.get("customer_id") is not None and not CustomerRepository(self.session).exists(owner_id, patch["customer_id"]):
            bad.append("customer_id")
        if bad:
            raise ValidationError(f"Unknown reference: {', '.join(bad)}", fields=bad)

    def _prepare_create(self, owner_id: int, patch: dict) -> dict:
        self._check_links(owner_id, patch)
        patch["total"] = round(patch["quantity"] * patch["price"], 2)
        if patch.get("sale_date") is None:
            patch["sale_date"] = utcnow()
        return patch

    def _prepare_update(self, owner_id: int, entity_id: int, patch: dict) -> dict:
        self._check_links(owner_id, patch)
        if "quantity" in patch or "price" in patch:
            current = self.get(owner_id, entity_id)
            quantity = patch.get("quantity", current.quantity)
            price = patch.get("price", current.price)
            patch["total"] = round(quantity * price, 2)
        return patch


def products(session: Session, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> ProductRepository:
    return ProductRepository(session, low_stock_threshold=low_stock_threshold)


def customers(session: Session) -> CustomerRepository:
    return CustomerRepository(session)


def sales(session: Session) -> SaleRepository:
    return SaleRepository(session)
