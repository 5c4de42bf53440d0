# Overview: Table-oriented data access used by the services; SQLAlchemy-backed or in-memory.

# backend/bevledger/store.py
"""
Data access seam.

Services never talk to db.session directly. They receive a Store with four
capabilities (query, insert, update, delete) plus commit/rollback, so the
same service code runs against the relational database or against the
in-memory fake used by unit tests.

Uniqueness (e.g. one opening stock per item and date) is declared once on
the SQLAlchemy model as a UniqueConstraint. The database enforces it for
SqlAlchemyStore; MemoryStore reads the same constraint metadata and enforces
it itself.
"""
from __future__ import annotations

import itertools
import operator
from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import UniqueConstraint
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError


class StoreError(Exception):
    """Raised when the backing store fails (network, permission, driver)."""


class StoreBusyError(StoreError):
    """Transient lock/deadlock/version conflict; the operation may be retried."""


class IntegrityViolation(StoreError):
    """A write broke a storage-level constraint (unique key, check, FK)."""


@dataclass(frozen=True)
class Criterion:
    column: str
    op: str
    value: Any


def where(column: str, op: str, value: Any) -> Criterion:
    if op not in _PY_OPERATORS:
        raise ValueError(f"unsupported operator: {op}")
    return Criterion(column, op, value)


def eq(column: str, value: Any) -> Criterion:
    return Criterion(column, "eq", value)


_PY_OPERATORS = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
    "in": lambda left, right: left in right,
}


class Store:
    """Interface shared by both implementations."""

    def query(
        self,
        model,
        *criteria: Criterion,
        order_by: str | Iterable[str] | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list:
        raise NotImplementedError

    def get(self, model, row_id: int):
        raise NotImplementedError

    def insert(self, model, **values):
        raise NotImplementedError

    def update(self, row, **values):
        raise NotImplementedError

    def delete(self, model, *criteria: Criterion) -> int:
        raise NotImplementedError

    def commit(self) -> None:
        raise NotImplementedError

    def rollback(self) -> None:
        raise NotImplementedError

    def first(self, model, *criteria: Criterion, **kwargs):
        rows = self.query(model, *criteria, limit=1, **kwargs)
        return rows[0] if rows else None


def _order_columns(order_by) -> list[str]:
    if order_by is None:
        return []
    if isinstance(order_by, str):
        return [order_by]
    return list(order_by)


class SqlAlchemyStore(Store):
    """Store backed by a Flask-SQLAlchemy session."""

    def __init__(self, db):
        self.db = db

    @property
    def session(self):
        return self.db.session

    def _wrap(self, exc: SQLAlchemyError) -> StoreError:
        self.session.rollback()
        if isinstance(exc, IntegrityError):
            return IntegrityViolation(str(exc.orig))
        if isinstance(exc, (OperationalError, StaleDataError)):
            return StoreBusyError(str(exc))
        return StoreError(str(exc))

    def _clause(self, model, criterion: Criterion):
        col = getattr(model, criterion.column)
        if criterion.op == "in":
            return col.in_(list(criterion.value))
        return _PY_OPERATORS[criterion.op](col, criterion.value)

    def query(self, model, *criteria, order_by=None, descending=False, limit=None) -> list:
        q = self.session.query(model)
        for criterion in criteria:
            q = q.filter(self._clause(model, criterion))
        columns = _order_columns(order_by) + ["id"]
        for name in columns:
            col = getattr(model, name)
            q = q.order_by(col.desc() if descending else col.asc())
        if limit is not None:
            q = q.limit(limit)
        try:
            return q.all()
        except SQLAlchemyError as exc:
            raise self._wrap(exc) from exc

    def get(self, model, row_id: int):
        try:
            return self.session.get(model, row_id)
        except SQLAlchemyError as exc:
            raise self._wrap(exc) from exc

    def insert(self, model, **values):
        row = model(**values)
        self.session.add(row)
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise self._wrap(exc) from exc
        return row

    def update(self, row, **values):
        for key, value in values.items():
            setattr(row, key, value)
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise self._wrap(exc) from exc
        return row

    def delete(self, model, *criteria) -> int:
        q = self.session.query(model)
        for criterion in criteria:
            q = q.filter(self._clause(model, criterion))
        try:
            count = q.delete(synchronize_session="fetch")
            self.session.flush()
        except SQLAlchemyError as exc:
            raise self._wrap(exc) from exc
        return count

    def commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._wrap(exc) from exc

    def rollback(self) -> None:
        self.session.rollback()


class MemoryStore(Store):
    """
    In-memory fake for tests.

    Rows are real (transient) model instances. Writes apply immediately and
    commit/rollback are no-ops, so multi-step writes are not atomic here.
    """

    def __init__(self):
        self._tables: dict[type, dict[int, Any]] = {}
        self._ids = itertools.count(1)

    def _table(self, model) -> dict[int, Any]:
        return self._tables.setdefault(model, {})

    @staticmethod
    def _matches(row, criterion: Criterion) -> bool:
        value = getattr(row, criterion.column)
        if criterion.op in ("eq", "ne", "in"):
            return _PY_OPERATORS[criterion.op](value, criterion.value)
        # SQL semantics: comparisons against NULL never match
        if value is None or criterion.value is None:
            return False
        return _PY_OPERATORS[criterion.op](value, criterion.value)

    @staticmethod
    def _unique_keys(model) -> list[tuple[str, ...]]:
        table = model.__table__
        keys = [
            tuple(col.key for col in constraint.columns)
            for constraint in table.constraints
            if isinstance(constraint, UniqueConstraint)
        ]
        keys.extend((col.key,) for col in table.columns if col.unique)
        return keys

    def _check_unique(self, model, row) -> None:
        for key in self._unique_keys(model):
            mine = tuple(getattr(row, col) for col in key)
            if any(v is None for v in mine):
                continue
            for other in self._table(model).values():
                if other is row:
                    continue
                if tuple(getattr(other, col) for col in key) == mine:
                    raise IntegrityViolation(
                        f"UNIQUE constraint failed: {model.__tablename__}.{', '.join(key)}"
                    )

    @staticmethod
    def _apply_defaults(model, row, *, on_update: bool) -> None:
        for col in model.__table__.columns:
            default = col.onupdate if on_update else col.default
            if default is None:
                continue
            if not on_update and getattr(row, col.key) is not None:
                continue
            if default.is_callable:
                setattr(row, col.key, default.arg(None))
            elif default.is_scalar:
                setattr(row, col.key, default.arg)

    def query(self, model, *criteria, order_by=None, descending=False, limit=None) -> list:
        rows = [
            row for row in self._table(model).values()
            if all(self._matches(row, c) for c in criteria)
        ]
        columns = _order_columns(order_by) + ["id"]
        rows.sort(
            key=lambda row: tuple(
                (getattr(row, name) is not None, getattr(row, name)) for name in columns
            ),
            reverse=descending,
        )
        if limit is not None:
            rows = rows[:limit]
        return rows

    def get(self, model, row_id: int):
        return self._table(model).get(row_id)

    def insert(self, model, **values):
        row = model(**values)
        self._apply_defaults(model, row, on_update=False)
        self._check_unique(model, row)
        row.id = next(self._ids)
        self._table(model)[row.id] = row
        return row

    def update(self, row, **values):
        model = type(row)
        previous = {key: getattr(row, key) for key in values}
        for key, value in values.items():
            setattr(row, key, value)
        try:
            self._check_unique(model, row)
        except IntegrityViolation:
            for key, value in previous.items():
                setattr(row, key, value)
            raise
        self._apply_defaults(model, row, on_update=True)
        return row

    def delete(self, model, *criteria) -> int:
        doomed = self.query(model, *criteria)
        table = self._table(model)
        for row in doomed:
            del table[row.id]
        return len(doomed)

    def commit(self) -> None:
        return None

    def rollback(self) -> None:
        return None


def default_store() -> Store:
    """The store bound to the current Flask app (see create_app)."""
    from flask import current_app

    return current_app.extensions["bevledger.store"]


def resolve(store: Store | None) -> Store:
    return store if store is not None else default_store()
