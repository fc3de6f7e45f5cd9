"""Table-level access to the remote relational store.

The core only needs key-by-id CRUD plus ``eq`` / ``ilike`` / ``in`` filters,
so the remote is modelled as a small protocol with a SQL implementation here
and a REST implementation in ``app.integrations.rest_table_client``.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from sqlalchemy import delete, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.integrations.errors import (
    RemoteStoreBadResponseError,
    RemoteStoreUnavailableError,
)
from app.models.order import OrderRecord
from app.models.user import UserRecord

ORDERS_TABLE = "orders"
USERS_TABLE = "users"

FilterOp = Literal["eq", "ilike", "in"]


@dataclass(frozen=True)
class Filter:
    column: str
    op: FilterOp
    value: Any


def eq(column: str, value: Any) -> Filter:
    return Filter(column, "eq", value)


def ilike(column: str, value: str) -> Filter:
    return Filter(column, "ilike", value)


def in_(column: str, values: Sequence[Any]) -> Filter:
    return Filter(column, "in", tuple(values))


class RemoteTableStore(Protocol):
    service: str

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]: ...

    def insert(self, table: str, row: dict[str, Any]) -> None: ...

    def update(self, table: str, row_id: str, values: dict[str, Any]) -> None: ...

    def delete(self, table: str, row_id: str) -> None: ...

    def ping(self) -> None: ...


class NullTableStore:
    """Remote store used when no backend is configured; every call is unavailable."""

    service = "none"

    def _unavailable(self) -> RemoteStoreUnavailableError:
        return RemoteStoreUnavailableError(self.service, "Remote store is not configured")

    def select(self, table, filters=(), order_by=None, descending=False):
        raise self._unavailable()

    def insert(self, table, row):
        raise self._unavailable()

    def update(self, table, row_id, values):
        raise self._unavailable()

    def delete(self, table, row_id):
        raise self._unavailable()

    def ping(self) -> None:
        raise self._unavailable()


_TABLE_MODELS: dict[str, type[OrderRecord] | type[UserRecord]] = {
    ORDERS_TABLE: OrderRecord,
    USERS_TABLE: UserRecord,
}


class SqlTableStore:
    service = "sql"

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def _model(self, table: str):
        try:
            return _TABLE_MODELS[table]
        except KeyError as err:
            raise ValueError(f"Unknown table: {table}") from err

    def _condition(self, model, item: Filter):
        column = getattr(model, item.column)
        if item.op == "eq":
            return column == item.value
        if item.op == "ilike":
            return column.ilike(item.value)
        if item.op == "in":
            return column.in_(list(item.value))
        raise ValueError(f"Unsupported filter operator: {item.op}")

    def _row_to_dict(self, model, record) -> dict[str, Any]:
        return {column.key: getattr(record, column.key) for column in model.__table__.columns}

    def select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        model = self._model(table)
        query = select(model)
        for item in filters:
            query = query.where(self._condition(model, item))
        if order_by:
            column = getattr(model, order_by)
            query = query.order_by(column.desc() if descending else column.asc())

        try:
            with self._session_factory() as db:
                records = list(db.scalars(query))
                return [self._row_to_dict(model, record) for record in records]
        except SQLAlchemyError as err:
            raise RemoteStoreUnavailableError(self.service, str(err)) from err

    def insert(self, table: str, row: dict[str, Any]) -> None:
        model = self._model(table)
        try:
            with self._session_factory() as db:
                db.add(model(**row))
                db.commit()
        except IntegrityError as err:
            raise RemoteStoreBadResponseError(self.service, f"Conflicting row: {err.orig}") from err
        except SQLAlchemyError as err:
            raise RemoteStoreUnavailableError(self.service, str(err)) from err

    def update(self, table: str, row_id: str, values: dict[str, Any]) -> None:
        model = self._model(table)
        try:
            with self._session_factory() as db:
                db.execute(update(model).where(model.id == row_id).values(**values))
                db.commit()
        except IntegrityError as err:
            raise RemoteStoreBadResponseError(self.service, f"Conflicting row: {err.orig}") from err
        except SQLAlchemyError as err:
            raise RemoteStoreUnavailableError(self.service, str(err)) from err

    def delete(self, table: str, row_id: str) -> None:
        model = self._model(table)
        try:
            with self._session_factory() as db:
                db.execute(delete(model).where(model.id == row_id))
                db.commit()
        except SQLAlchemyError as err:
            raise RemoteStoreUnavailableError(self.service, str(err)) from err

    def ping(self) -> None:
        try:
            with self._session_factory() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as err:
            raise RemoteStoreUnavailableError(self.service, str(err)) from err
