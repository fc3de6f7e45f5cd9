"""Two-tier persistence: a local mirror in front of the remote table store.

Reads try the remote first and refresh the mirror; any remote error falls back
to the mirror. Writes land in the mirror synchronously and are handed to a
``RemoteWriter``, which applies them remotely on a best-effort basis.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel

from app.integrations.errors import RemoteStoreError
from app.models.domain import Order, User, new_id, order_to_row, user_to_row
from app.models.order import OrderStatus
from app.models.user import UserRole
from app.observability import LOGGER_NAME, log_event, metrics_store
from app.services.local_mirror import ORDERS_KEY, USERS_KEY, LocalMirror
from app.services.remote_store import (
    ORDERS_TABLE,
    USERS_TABLE,
    Filter,
    RemoteTableStore,
    eq,
    ilike,
    in_,
)
from app.services.state_machine import reconcile_status

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = logging.getLogger(LOGGER_NAME)


class RemoteWriter:
    """Applies remote writes in submission order, off the request path when in background mode."""

    def __init__(self, mode: str = "background") -> None:
        self._executor: ThreadPoolExecutor | None = None
        if mode == "background":
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="remote-writer")

    @property
    def mode(self) -> str:
        return "inline" if self._executor is None else "background"

    def submit(
        self,
        description: str,
        fn: Callable[[], None],
        *,
        order_id: str | None = None,
        user_id: str | None = None,
    ) -> None:
        if self._executor is None:
            self._run(description, fn, order_id, user_id)
            return
        future = self._executor.submit(self._run, description, fn, order_id, user_id)
        future.add_done_callback(_log_unexpected_failure)

    def _run(
        self,
        description: str,
        fn: Callable[[], None],
        order_id: str | None,
        user_id: str | None,
    ) -> None:
        try:
            fn()
        except RemoteStoreError as err:
            metrics_store.increment("remote_write_failed_total")
            log_event(
                f"remote_write_failed:{description}:{err}",
                level=logging.WARNING,
                order_id=order_id,
                user_id=user_id,
            )
            return
        metrics_store.increment("remote_write_total")

    def flush(self) -> None:
        if self._executor is not None:
            self._executor.submit(lambda: None).result()

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None


def _log_unexpected_failure(future: Future) -> None:
    exc = future.exception()
    if exc is not None:
        metrics_store.increment("remote_write_failed_total")
        logger.error("remote_write_crashed", exc_info=exc)


@dataclass
class SyncReport:
    remote_available: bool
    users_pushed: int = 0
    users_skipped: int = 0
    orders_pushed: int = 0
    users_pulled: int = 0
    orders_pulled: int = 0
    failures: int = 0


class TwoTierStore:
    def __init__(
        self,
        local: LocalMirror,
        remote: RemoteTableStore,
        writer: RemoteWriter | None = None,
    ) -> None:
        self.local = local
        self.remote = remote
        self.writer = writer or RemoteWriter(mode="inline")

    def close(self) -> None:
        self.writer.shutdown()

    def check_remote(self) -> None:
        self.remote.ping()

    # -- remote helpers -------------------------------------------------

    def _remote_select(
        self,
        table: str,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]] | None:
        # pending writes must land before the remote is read back
        self.writer.flush()
        try:
            return self.remote.select(table, filters, order_by=order_by, descending=descending)
        except RemoteStoreError as err:
            self._remote_unavailable(f"select:{table}", err)
            return None

    def _remote_unavailable(self, operation: str, err: RemoteStoreError) -> None:
        metrics_store.increment("remote_store_errors_total")
        log_event(f"remote_store_unavailable:{operation}:{err}", level=logging.WARNING)

    def _id_taken(self, table: str, key: str, item_id: str) -> bool:
        if any(item.get("id") == item_id for item in self.local.read(key)):
            return True
        return bool(self._remote_select(table, [eq("id", item_id)]))

    # -- local helpers --------------------------------------------------

    def _local_items(self, key: str, model: type[ModelT]) -> list[ModelT]:
        return [model.model_validate(item) for item in self.local.read(key)]

    def _replace_local_items(self, key: str, items: Iterable[BaseModel]) -> None:
        self.local.write(key, [item.model_dump(mode="json") for item in items])

    def _merge_local_items(self, key: str, items: Iterable[BaseModel]) -> None:
        dumped_items = [item.model_dump(mode="json") for item in items]

        def merge(snapshot: list[dict]) -> list[dict]:
            positions = {item.get("id"): index for index, item in enumerate(snapshot)}
            for dumped in dumped_items:
                index = positions.get(dumped["id"])
                if index is None:
                    positions[dumped["id"]] = len(snapshot)
                    snapshot.append(dumped)
                else:
                    snapshot[index] = dumped
            return snapshot

        self.local.update(key, merge)

    def _remove_local_item(self, key: str, item_id: str) -> None:
        self.local.update(
            key, lambda snapshot: [item for item in snapshot if item.get("id") != item_id]
        )

    # -- orders ---------------------------------------------------------

    def list_orders(self) -> list[Order]:
        rows = self._remote_select(ORDERS_TABLE, order_by="created_at", descending=True)
        if rows:
            orders = [Order.model_validate(row) for row in rows]
            self._replace_local_items(ORDERS_KEY, orders)
            return orders
        orders = self._local_items(ORDERS_KEY, Order)
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    def get_order(self, order_id: str) -> Order | None:
        rows = self._remote_select(ORDERS_TABLE, [eq("id", order_id)])
        if rows:
            order = Order.model_validate(rows[0])
            self._merge_local_items(ORDERS_KEY, [order])
            return order
        return next(
            (order for order in self._local_items(ORDERS_KEY, Order) if order.id == order_id),
            None,
        )

    def orders_for_courier(self, courier_id: str) -> list[Order]:
        rows = self._remote_select(
            ORDERS_TABLE,
            [eq("courier_id", courier_id)],
            order_by="created_at",
            descending=True,
        )
        if rows:
            orders = [Order.model_validate(row) for row in rows]
            self._merge_local_items(ORDERS_KEY, orders)
            return orders
        orders = [
            order
            for order in self._local_items(ORDERS_KEY, Order)
            if order.courier_id == courier_id
        ]
        return sorted(orders, key=lambda order: order.created_at, reverse=True)

    def find_orders_by_code(
        self,
        code: str,
        statuses: Iterable[OrderStatus] | None = None,
    ) -> list[Order]:
        normalized = code.strip().upper()
        if not normalized.isalnum():
            return []
        status_set = set(statuses) if statuses is not None else None

        def matches(order: Order) -> bool:
            if order.code is None or order.code.upper() != normalized:
                return False
            return status_set is None or order.status in status_set

        filters = [ilike("code", normalized)]
        if status_set is not None:
            filters.append(in_("status", sorted(item.value for item in status_set)))

        rows = self._remote_select(ORDERS_TABLE, filters, order_by="created_at", descending=True)
        if rows:
            orders = [order for order in map(Order.model_validate, rows) if matches(order)]
            if orders:
                self._merge_local_items(ORDERS_KEY, orders)
                return orders

        local = [order for order in self._local_items(ORDERS_KEY, Order) if matches(order)]
        return sorted(local, key=lambda order: order.created_at, reverse=True)

    def insert_order(self, order: Order) -> Order:
        order = reconcile_status(order)
        if self._id_taken(ORDERS_TABLE, ORDERS_KEY, order.id):
            order = order.model_copy(update={"id": new_id()})

        self._merge_local_items(ORDERS_KEY, [order])
        row = order_to_row(order)
        self.writer.submit(
            "insert_order",
            lambda: self.remote.insert(ORDERS_TABLE, row),
            order_id=order.id,
        )
        return order

    def save_order(self, order: Order) -> Order:
        order = reconcile_status(order)
        self._merge_local_items(ORDERS_KEY, [order])

        values = order_to_row(order)
        order_id = values.pop("id")
        values.pop("created_at")
        self.writer.submit(
            "update_order",
            lambda: self.remote.update(ORDERS_TABLE, order_id, values),
            order_id=order_id,
        )
        return order

    def delete_order(self, order_id: str) -> None:
        self._remove_local_item(ORDERS_KEY, order_id)
        self.writer.submit(
            "delete_order",
            lambda: self.remote.delete(ORDERS_TABLE, order_id),
            order_id=order_id,
        )

    # -- users ----------------------------------------------------------

    def list_users(self, role: UserRole | None = None) -> list[User]:
        filters = [eq("role", role.value)] if role is not None else []
        rows = self._remote_select(USERS_TABLE, filters, order_by="created_at")
        if rows:
            users = [User.model_validate(row) for row in rows]
            if role is None:
                self._replace_local_items(USERS_KEY, users)
            else:
                self._merge_local_items(USERS_KEY, users)
            return users
        users = self._local_items(USERS_KEY, User)
        if role is not None:
            users = [user for user in users if user.role == role]
        return sorted(users, key=lambda user: user.created_at)

    def get_user(self, user_id: str) -> User | None:
        rows = self._remote_select(USERS_TABLE, [eq("id", user_id)])
        if rows:
            user = User.model_validate(rows[0])
            self._merge_local_items(USERS_KEY, [user])
            return user
        return next(
            (user for user in self._local_items(USERS_KEY, User) if user.id == user_id),
            None,
        )

    def find_user_by_username(self, username: str) -> User | None:
        wanted = username.strip().casefold()
        if not wanted:
            return None

        rows = self._remote_select(USERS_TABLE, [ilike("username", username.strip())])
        if rows:
            for user in map(User.model_validate, rows):
                if user.username.casefold() == wanted:
                    self._merge_local_items(USERS_KEY, [user])
                    return user

        return next(
            (
                user
                for user in self._local_items(USERS_KEY, User)
                if user.username.casefold() == wanted
            ),
            None,
        )

    def insert_user(self, user: User) -> User:
        if self._id_taken(USERS_TABLE, USERS_KEY, user.id):
            user = user.model_copy(update={"id": new_id()})

        self._merge_local_items(USERS_KEY, [user])
        row = user_to_row(user)
        self.writer.submit(
            "insert_user",
            lambda: self.remote.insert(USERS_TABLE, row),
            user_id=user.id,
        )
        return user

    def save_user(self, user: User) -> User:
        self._merge_local_items(USERS_KEY, [user])

        values = user_to_row(user)
        user_id = values.pop("id")
        values.pop("created_at")
        self.writer.submit(
            "update_user",
            lambda: self.remote.update(USERS_TABLE, user_id, values),
            user_id=user_id,
        )
        return user

    def delete_user(self, user_id: str) -> None:
        self._remove_local_item(USERS_KEY, user_id)
        self.writer.submit(
            "delete_user",
            lambda: self.remote.delete(USERS_TABLE, user_id),
            user_id=user_id,
        )

    # -- resync ---------------------------------------------------------

    def push_local_to_remote(self) -> SyncReport:
        """Copy the mirror to the remote, skipping users whose username is taken there."""
        self.writer.flush()
        try:
            remote_users = self.remote.select(USERS_TABLE)
            remote_order_ids = {row["id"] for row in self.remote.select(ORDERS_TABLE)}
        except RemoteStoreError as err:
            self._remote_unavailable("push", err)
            return SyncReport(remote_available=False)

        report = SyncReport(remote_available=True)
        remote_user_ids = {row["id"] for row in remote_users}
        remote_usernames = {str(row["username"]).casefold() for row in remote_users}

        for user in self._local_items(USERS_KEY, User):
            try:
                if user.id in remote_user_ids:
                    values = user_to_row(user)
                    values.pop("id")
                    values.pop("created_at")
                    self.remote.update(USERS_TABLE, user.id, values)
                elif user.username.casefold() in remote_usernames:
                    report.users_skipped += 1
                    continue
                else:
                    self.remote.insert(USERS_TABLE, user_to_row(user))
            except RemoteStoreError as err:
                report.failures += 1
                log_event(f"sync_push_failed:{err}", level=logging.WARNING, user_id=user.id)
                continue
            report.users_pushed += 1

        for order in self._local_items(ORDERS_KEY, Order):
            order = reconcile_status(order)
            try:
                if order.id in remote_order_ids:
                    values = order_to_row(order)
                    values.pop("id")
                    values.pop("created_at")
                    self.remote.update(ORDERS_TABLE, order.id, values)
                else:
                    self.remote.insert(ORDERS_TABLE, order_to_row(order))
            except RemoteStoreError as err:
                report.failures += 1
                log_event(f"sync_push_failed:{err}", level=logging.WARNING, order_id=order.id)
                continue
            report.orders_pushed += 1

        metrics_store.increment("sync_push_total")
        log_event(
            f"sync_push_completed:users={report.users_pushed}:orders={report.orders_pushed}"
        )
        return report

    def pull_remote_to_local(self) -> SyncReport:
        self.writer.flush()
        try:
            user_rows = self.remote.select(USERS_TABLE, order_by="created_at")
            order_rows = self.remote.select(ORDERS_TABLE, order_by="created_at", descending=True)
        except RemoteStoreError as err:
            self._remote_unavailable("pull", err)
            return SyncReport(remote_available=False)

        users = [User.model_validate(row) for row in user_rows]
        orders = [reconcile_status(Order.model_validate(row)) for row in order_rows]
        self._replace_local_items(USERS_KEY, users)
        self._replace_local_items(ORDERS_KEY, orders)

        metrics_store.increment("sync_pull_total")
        return SyncReport(
            remote_available=True,
            users_pulled=len(users),
            orders_pulled=len(orders),
        )
