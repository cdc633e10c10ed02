"""CRUD controller for one record collection.

A controller binds one collection for one caller. Every operation is
capability-checked against the caller's ability, confined to the caller's
organization by the tenant scope policy, and reconciles the in-memory
``ControllerState`` with what the store reports.

Operations never raise to their caller. Failures are recorded on
``state.error`` and reported as a falsy return value (None, False or an
empty list).
"""

import asyncio
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from opsdesk.core.config import Settings, get_settings
from opsdesk.core.filters import FilterError, FilterTranslator
from opsdesk.core.logging import get_logger
from opsdesk.domain.entities.collection import Collection, resolve_collection
from opsdesk.domain.entities.controller_state import ControllerState, Record
from opsdesk.domain.entities.pagination import Pagination
from opsdesk.domain.entities.query_result import QueryResult
from opsdesk.domain.entities.tenant_context import TenantContext
from opsdesk.domain.exceptions import (
    DataAccessError,
    PermissionDeniedError,
    TransportError,
)
from opsdesk.domain.services.ability import Ability, Action
from opsdesk.domain.services.tenant_scope import TenantScopePolicy

logger = get_logger(__name__)

PRIMARY_KEY = "id"

BulkUpdateItem = Mapping[str, Any] | tuple[str, Mapping[str, Any]]


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class CRUDController:
    """Tenant-scoped, capability-gated access to one collection.

    Args:
        client: Store client exposing ``table(name)`` query builders.
        collection: Table name, module alias or Collection member.
        tenant: Caller identity.
        ability: Caller's capability evaluator.
        settings: Application settings (defaults to ``get_settings()``).
        scope_policy: Organization scoping policy (defaults to one built
            from settings).
        translator: Filter translator (defaults to one using the
            collection's search fields).
        clock: Returns the ISO timestamp stamped on writes.

    Raises:
        UnmappedCollectionError: If the collection is not registered.
    """

    def __init__(
        self,
        client: Any,
        collection: str | Collection,
        tenant: TenantContext,
        ability: Ability,
        *,
        settings: Settings | None = None,
        scope_policy: TenantScopePolicy | None = None,
        translator: FilterTranslator | None = None,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self.collection = resolve_collection(collection)
        self.subject = self.collection.subject
        self.tenant = tenant
        self.ability = ability
        self._client = client
        self._settings = settings or get_settings()
        self._scope = scope_policy or TenantScopePolicy.from_settings(self._settings)
        self._translator = translator or FilterTranslator(
            search_fields=self.collection.search_fields,
            timestamp_field=self._settings.timestamp_field,
            search_mode=self._settings.search_mode,
        )
        self._clock = clock or utc_now_iso
        self._generation = 0
        self.state = ControllerState()

    # State accessors

    @property
    def data(self) -> list[Record]:
        return self.state.records

    @property
    def loading(self) -> bool:
        return self.state.loading

    @property
    def error(self) -> Exception | None:
        return self.state.error

    @property
    def total(self) -> int:
        return self.state.total

    @property
    def refresh_error(self) -> Exception | None:
        return self.state.refresh_error

    @property
    def table_name(self) -> str:
        return self.collection.value

    # Internal helpers

    def _authorize(self, action: Action) -> bool:
        """Run the shared pre-flight for an operation.

        Returns:
            True if the operation may proceed.
        """
        if not self.ability.rules_ready:
            logger.warning(
                "Ability still loading, aborting operation",
                collection=self.table_name,
                action=action.value,
            )
            self.state.loading = False
            return False

        if self.ability.cannot(action, self.subject):
            self.state.error = PermissionDeniedError(
                action.value, self.subject.value, collection=self.table_name
            )
            self.state.loading = False
            logger.warning(
                "Permission denied",
                collection=self.table_name,
                action=action.value,
                subject=self.subject.value,
                user_id=self.tenant.user_id,
                user_segment=self.tenant.user_segment,
                role=self.tenant.role,
            )
            return False

        return True

    def _begin(self) -> None:
        self.state.loading = True
        self.state.error = None
        self.state.refresh_error = None

    def _as_data_error(self, exc: Exception) -> Exception:
        if isinstance(exc, (DataAccessError, FilterError)):
            return exc
        return TransportError(str(exc) or type(exc).__name__, collection=self.table_name)

    def _fail(self, operation: str, exc: Exception) -> None:
        error = self._as_data_error(exc)
        self.state.error = error

        if isinstance(error, TransportError):
            logger.error(
                "Operation failed",
                collection=self.table_name,
                operation=operation,
                error=error.message,
                code=error.code,
            )
        else:
            logger.warning(
                "Operation rejected",
                collection=self.table_name,
                operation=operation,
                error=str(error),
                error_type=type(error).__name__,
            )

    def _unwrap(self, result: QueryResult) -> QueryResult:
        """Raise the store's error, if any, as a TransportError."""
        if result.error is not None:
            raise TransportError(
                result.error.message,
                code=result.error.code,
                collection=self.table_name,
            )
        return result

    def _query(self) -> Any:
        return self._client.table(self.table_name)

    def _stamp_new(self, row: Mapping[str, Any], timestamp: str) -> dict[str, Any]:
        stamped = self._scope.stamp_insert(self.tenant, self.collection, row)
        stamped["created_at"] = timestamp
        stamped["updated_at"] = timestamp
        stamped[self._settings.timestamp_field] = timestamp
        if self.tenant.user_id:
            stamped["created_by"] = self.tenant.user_id
        return stamped

    def _replace_local(self, record: Record) -> None:
        record_id = record.get(PRIMARY_KEY)
        self.state.records = [
            record if item.get(PRIMARY_KEY) == record_id else item
            for item in self.state.records
        ]

    # Operations

    async def list_records(
        self,
        filters: Mapping[str, Any] | None = None,
        pagination: Pagination | Mapping[str, Any] | None = None,
    ) -> None:
        """Load a page of records into state.

        Replaces ``records`` wholesale and sets ``total``. Responses from an
        older call that finishes after a newer one are discarded.

        Args:
            filters: Filter map.
            pagination: Page and sort request (``{page, pageSize, sortBy?,
                sortOrder?}`` or a Pagination).
        """
        if not self._authorize(Action.READ):
            return

        self._generation += 1
        generation = self._generation
        self._begin()

        try:
            page = Pagination.coerce(pagination)
            self.state.last_filters = dict(filters) if filters is not None else None
            self.state.last_pagination = page
            self.state.listed = True

            count = "exact" if self._settings.exact_counts else None
            query = self._query().select("*", count=count)
            query = self._scope.scope(query, self.tenant, self.collection)
            query = self._translator.apply(query, filters)

            if page is not None and page.sort_by:
                query = query.order(page.sort_by, ascending=page.sort_order == "asc")
            else:
                query = query.order(self._settings.timestamp_field, ascending=False)
            query = query.order(PRIMARY_KEY, ascending=True)

            if page is not None:
                start, end = page.bounds
                query = query.range(start, end)

            result = self._unwrap(await query.execute())

            if generation != self._generation:
                logger.debug(
                    "Discarding stale list response",
                    collection=self.table_name,
                    generation=generation,
                    latest=self._generation,
                )
                return

            records = list(result.data or [])
            self.state.records = records
            self.state.total = result.count if result.count is not None else len(records)
            logger.debug(
                "Records listed",
                collection=self.table_name,
                returned=len(records),
                total=self.state.total,
            )
        except Exception as e:
            if generation == self._generation:
                self._fail("list", e)
        finally:
            if generation == self._generation:
                self.state.loading = False

    async def refresh(self) -> None:
        """Replay the last list call with its filters and pagination."""
        await self.list_records(self.state.last_filters, self.state.last_pagination)

    async def _refresh_after_write(self, operation: str) -> None:
        """Resynchronize a listed view after a successful write.

        A controller that never listed has no view to refresh. A failed
        refresh lands on ``refresh_error`` so ``error`` keeps describing the
        write itself.
        """
        if not self.state.listed:
            logger.debug(
                "Skipping refresh, nothing listed",
                collection=self.table_name,
                operation=operation,
            )
            return

        await self.refresh()
        if self.state.error is not None:
            self.state.refresh_error = self.state.error
            self.state.error = None
            logger.warning(
                "Refresh after write failed",
                collection=self.table_name,
                operation=operation,
                error=str(self.state.refresh_error),
            )

    async def get_by_id(self, record_id: str) -> Record | None:
        """Fetch one record visible to the caller.

        Returns:
            The record, or None if it does not exist, is outside the caller's
            organization, or the operation failed.
        """
        if not self._authorize(Action.READ):
            return None

        self._begin()
        try:
            query = self._query().select("*").eq(PRIMARY_KEY, record_id)
            query = self._scope.scope(query, self.tenant, self.collection)
            result = self._unwrap(await query.single().execute())
            if result.data is None:
                logger.debug("Record not found", collection=self.table_name, record_id=record_id)
            return result.data
        except Exception as e:
            self._fail("get_by_id", e)
            return None
        finally:
            self.state.loading = False

    async def create(self, data: Mapping[str, Any]) -> Record | None:
        """Insert one record, then refresh the list if one was loaded.

        The record is stamped with ``created_at``/``updated_at`` (same
        instant), the caller's organization per the scope policy and the
        caller's user id as ``created_by``.

        A failed refresh after a successful insert is reported on
        ``refresh_error``, not ``error``.
        """
        if not self._authorize(Action.CREATE):
            return None

        self._begin()
        try:
            row = self._stamp_new(data, self._clock())
            result = self._unwrap(await self._query().insert(row).execute())
            created = (result.data or [None])[0]
            logger.info(
                "Record created",
                collection=self.table_name,
                record_id=created.get(PRIMARY_KEY) if created else None,
                organization_id=row.get(self._scope.org_field),
            )
            await self._refresh_after_write("create")
            return created
        except Exception as e:
            self._fail("create", e)
            return None
        finally:
            self.state.loading = False

    async def _apply_update(self, record_id: str, data: Mapping[str, Any]) -> Record | None:
        patch = self._scope.sanitize_patch(self.tenant, self.collection, data)
        patch.pop(PRIMARY_KEY, None)
        patch.pop("created_at", None)
        patch["updated_at"] = self._clock()

        query = self._query().update(patch).eq(PRIMARY_KEY, record_id)
        query = self._scope.scope(query, self.tenant, self.collection)
        result = self._unwrap(await query.execute())

        rows = result.data or []
        if not rows:
            logger.info("Update matched no records", collection=self.table_name, record_id=record_id)
            return None

        updated = rows[0]
        self._replace_local(updated)
        return updated

    async def update(self, record_id: str, data: Mapping[str, Any]) -> Record | None:
        """Patch one record and replace it in place in ``records``.

        Returns:
            The updated record, or None if nothing matched or the operation
            failed.
        """
        if not self._authorize(Action.UPDATE):
            return None

        self._begin()
        try:
            return await self._apply_update(record_id, data)
        except Exception as e:
            self._fail("update", e)
            return None
        finally:
            self.state.loading = False

    async def remove(self, record_id: str) -> bool:
        """Delete one record.

        Returns:
            True if the store deleted a row. Zero rows affected returns False
            and leaves ``records`` and ``total`` unchanged.
        """
        if not self._authorize(Action.DELETE):
            return False

        self._begin()
        try:
            query = self._query().delete().eq(PRIMARY_KEY, record_id)
            query = self._scope.scope(query, self.tenant, self.collection)
            result = self._unwrap(await query.execute())

            if not result.data:
                logger.info("Delete matched no records", collection=self.table_name, record_id=record_id)
                return False

            self.state.records = [
                item for item in self.state.records if item.get(PRIMARY_KEY) != record_id
            ]
            self.state.total = max(0, self.state.total - 1)
            logger.info("Record deleted", collection=self.table_name, record_id=record_id)
            return True
        except Exception as e:
            self._fail("remove", e)
            return False
        finally:
            self.state.loading = False

    async def bulk_create(self, items: Sequence[Mapping[str, Any]]) -> list[Record]:
        """Insert several records in one call, then refresh a loaded list.

        Every row gets the same timestamp and the same stamping as ``create``.
        """
        if not self._authorize(Action.CREATE):
            return []

        self._begin()
        try:
            timestamp = self._clock()
            rows = [self._stamp_new(item, timestamp) for item in items]
            if not rows:
                return []
            result = self._unwrap(await self._query().insert(rows).execute())
            created = list(result.data or [])
            logger.info("Records created", collection=self.table_name, count=len(created))
            await self._refresh_after_write("bulk_create")
            return created
        except Exception as e:
            self._fail("bulk_create", e)
            return []
        finally:
            self.state.loading = False

    async def bulk_update(self, items: Iterable[BulkUpdateItem]) -> list[Record]:
        """Run one update per item concurrently.

        Args:
            items: ``{"id": ..., "data": {...}}`` mappings or ``(id, data)``
                pairs.

        Returns:
            The records that were updated. Items run in separate
            transactions, so earlier successes stand when another item fails.
            Each failure is kept on ``state.item_errors`` by id and the first
            one is recorded on ``state.error``.
        """
        if not self._authorize(Action.UPDATE):
            return []

        self._begin()
        self.state.item_errors = {}
        try:
            pairs = [
                (item["id"], item.get("data") or {}) if isinstance(item, Mapping) else item
                for item in items
            ]
            outcomes = await asyncio.gather(
                *(self._apply_update(record_id, data) for record_id, data in pairs),
                return_exceptions=True,
            )

            updated: list[Record] = []
            failures: list[BaseException] = []
            for (record_id, _), outcome in zip(pairs, outcomes):
                if isinstance(outcome, BaseException):
                    failures.append(outcome)
                    if isinstance(outcome, Exception):
                        self.state.item_errors[record_id] = self._as_data_error(outcome)
                elif outcome is not None:
                    updated.append(outcome)

            if failures:
                first = failures[0]
                if not isinstance(first, Exception):
                    raise first
                self._fail("bulk_update", first)
            logger.info(
                "Records updated",
                collection=self.table_name,
                requested=len(pairs),
                updated=len(updated),
                failed=len(failures),
            )
            return updated
        except Exception as e:
            self._fail("bulk_update", e)
            return []
        finally:
            self.state.loading = False

    async def bulk_remove(self, record_ids: Sequence[str]) -> bool:
        """Delete several records in one call.

        Returns:
            True if the store call succeeded. Only ids the store reports as
            deleted are removed from ``records`` and counted off ``total``.
        """
        if not self._authorize(Action.DELETE):
            return False

        self._begin()
        try:
            ids = list(record_ids)
            if not ids:
                return True
            query = self._query().delete().in_(PRIMARY_KEY, ids)
            query = self._scope.scope(query, self.tenant, self.collection)
            result = self._unwrap(await query.execute())

            deleted = {row.get(PRIMARY_KEY) for row in result.data or []}
            self.state.records = [
                item for item in self.state.records if item.get(PRIMARY_KEY) not in deleted
            ]
            self.state.total = max(0, self.state.total - len(deleted))
            logger.info(
                "Records deleted",
                collection=self.table_name,
                requested=len(ids),
                deleted=len(deleted),
            )
            return True
        except Exception as e:
            self._fail("bulk_remove", e)
            return False
        finally:
            self.state.loading = False
