"""Unit tests for CRUDController with a mocked store client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from opsdesk.core.filters import UnsupportedFilterOperatorError
from opsdesk.domain.entities import Pagination, QueryError, QueryResult, TenantContext
from opsdesk.domain.exceptions import (
    PermissionDeniedError,
    TenantUnresolvedError,
    TransportError,
    UnmappedCollectionError,
)
from opsdesk.domain.services import Ability, CRUDController, build_ability

PARTNER = TenantContext(user_segment="partner", organization_id="org-a", user_id="u1", role="admin")
FIXED_NOW = "2024-06-01T12:00:00+00:00"


def make_client(*results):
    """Store client whose builders chain to themselves and return results in order."""
    builder = MagicMock()
    for method in (
        "select", "insert", "update", "delete", "eq", "neq", "gt", "gte", "lt",
        "lte", "like", "ilike", "in_", "or_", "order", "range", "limit", "single",
    ):
        getattr(builder, method).return_value = builder
    builder.execute = AsyncMock(side_effect=list(results))

    client = MagicMock()
    client.table.return_value = builder
    return client, builder


def make_controller(settings, client, tenant=PARTNER, ability=None, collection="eco_business_directory"):
    return CRUDController(
        client,
        collection,
        tenant,
        ability or build_ability(tenant.role, tenant.user_segment, tenant.organization_id),
        settings=settings,
        clock=lambda: FIXED_NOW,
    )


class TestConstruction:
    def test_unmapped_collection_fails(self, settings):
        client, _ = make_client()

        with pytest.raises(UnmappedCollectionError):
            make_controller(settings, client, collection="eco_ports")

    def test_initial_state(self, settings):
        client, _ = make_client()
        controller = make_controller(settings, client)

        assert controller.data == []
        assert controller.loading is False
        assert controller.error is None
        assert controller.total == 0


class TestPreflight:
    """Test suite for the capability pre-flight shared by all operations."""

    @pytest.mark.asyncio
    async def test_ability_loading_aborts_silently(self, settings):
        client, _ = make_client()
        controller = make_controller(settings, client, ability=Ability.loading())

        await controller.list_records()
        created = await controller.create({"name": "Acme"})

        assert created is None
        assert controller.error is None
        assert controller.loading is False
        client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_denied_read_sets_error(self, settings):
        client, _ = make_client()
        controller = make_controller(settings, client, ability=Ability())

        await controller.list_records()

        assert isinstance(controller.error, PermissionDeniedError)
        assert str(controller.error) == "You don't have permission to read businesss"
        client.table.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("operation", "args", "falsy"),
        [
            ("create", ({"name": "Acme"},), None),
            ("update", ("b1", {"name": "Acme"}), None),
            ("remove", ("b1",), False),
            ("bulk_create", ([{"name": "Acme"}],), []),
            ("bulk_update", ([{"id": "b1", "data": {"name": "x"}}],), []),
            ("bulk_remove", (["b1"],), False),
        ],
    )
    async def test_denied_mutations_never_reach_store(self, settings, operation, args, falsy):
        viewer = TenantContext(user_segment="partner", organization_id="org-a", role="viewer")
        client, _ = make_client()
        controller = make_controller(settings, client, tenant=viewer)

        result = await getattr(controller, operation)(*args)

        assert result == falsy
        assert isinstance(controller.error, PermissionDeniedError)
        assert controller.loading is False
        client.table.assert_not_called()


class TestListRecords:
    @pytest.mark.asyncio
    async def test_builds_scoped_sorted_ranged_query(self, settings):
        client, builder = make_client(QueryResult(data=[{"id": "b1"}], count=31))
        controller = make_controller(settings, client)

        await controller.list_records({"status": "Active"}, {"page": 2, "pageSize": 10})

        client.table.assert_called_once_with("eco_business_directory")
        builder.select.assert_called_once_with("*", count="exact")
        assert builder.eq.call_args_list[0].args == ("organization_id", "org-a")
        assert builder.eq.call_args_list[1].args == ("status", "Active")
        assert builder.order.call_args_list[0].args == ("created_at",)
        assert builder.order.call_args_list[0].kwargs == {"ascending": False}
        builder.range.assert_called_once_with(10, 19)
        assert controller.data == [{"id": "b1"}]
        assert controller.total == 31
        assert controller.state.last_pagination == Pagination(page=2, page_size=10)

    @pytest.mark.asyncio
    async def test_explicit_sort(self, settings):
        client, builder = make_client(QueryResult(data=[], count=0))
        controller = make_controller(settings, client)

        await controller.list_records(None, Pagination(sort_by="name", sort_order="asc"))

        assert builder.order.call_args_list[0].args == ("name",)
        assert builder.order.call_args_list[0].kwargs == {"ascending": True}

    @pytest.mark.asyncio
    async def test_page_length_total_without_exact_counts(self, settings):
        settings = settings.model_copy(update={"exact_counts": False})
        client, builder = make_client(QueryResult(data=[{"id": "a"}, {"id": "b"}]))
        controller = make_controller(settings, client)

        await controller.list_records()

        builder.select.assert_called_once_with("*", count=None)
        assert controller.total == 2

    @pytest.mark.asyncio
    async def test_transport_failure_preserves_records(self, settings):
        client, _ = make_client(
            QueryResult(data=[{"id": "b1"}, {"id": "b2"}], count=2),
            QueryResult(error=QueryError("connection reset", code="08006")),
        )
        controller = make_controller(settings, client)

        await controller.list_records()
        await controller.list_records({"status": "Active"})

        assert isinstance(controller.error, TransportError)
        assert controller.error.message == "connection reset"
        assert controller.error.code == "08006"
        assert [r["id"] for r in controller.data] == ["b1", "b2"]
        assert controller.total == 2
        assert controller.loading is False

    @pytest.mark.asyncio
    async def test_raised_client_error_is_wrapped(self, settings):
        client, _ = make_client(RuntimeError("socket closed"))
        controller = make_controller(settings, client)

        await controller.list_records()

        assert isinstance(controller.error, TransportError)
        assert "socket closed" in str(controller.error)
        assert controller.loading is False

    @pytest.mark.asyncio
    async def test_unsupported_operator_is_recorded(self, settings):
        client, builder = make_client()
        controller = make_controller(settings, client)

        await controller.list_records({"fee": {"operator": "between", "value": [1, 2]}})

        assert isinstance(controller.error, UnsupportedFilterOperatorError)
        builder.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_unresolved_tenant_is_recorded(self, settings):
        orphan = TenantContext(user_segment="partner", organization_id=None, role="admin")
        client, builder = make_client()
        controller = make_controller(settings, client, tenant=orphan)

        await controller.list_records()

        assert isinstance(controller.error, TenantUnresolvedError)
        builder.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_degraded_scope_reads_unfiltered(self, settings):
        settings = settings.model_copy(update={"strict_tenant_scope": False})
        orphan = TenantContext(user_segment="partner", organization_id=None, role="admin")
        client, builder = make_client(QueryResult(data=[{"id": "b1"}], count=1))
        controller = make_controller(settings, client, tenant=orphan)

        await controller.list_records()

        assert controller.error is None
        assert controller.data == [{"id": "b1"}]
        builder.eq.assert_not_called()

    @pytest.mark.asyncio
    async def test_stale_response_is_discarded(self, settings):
        """Test that a slower, older list call cannot overwrite a newer one."""
        release_first = asyncio.Event()
        calls = []

        async def execute():
            calls.append(len(calls))
            if len(calls) == 1:
                await release_first.wait()
                return QueryResult(data=[{"id": "stale"}], count=1)
            return QueryResult(data=[{"id": "fresh"}], count=1)

        client, builder = make_client()
        builder.execute = AsyncMock(side_effect=execute)
        controller = make_controller(settings, client)

        first = asyncio.create_task(controller.list_records({"status": "Draft"}))
        await asyncio.sleep(0)
        await controller.list_records({"status": "Active"})

        assert controller.data == [{"id": "fresh"}]
        assert controller.loading is False

        release_first.set()
        await first

        assert controller.data == [{"id": "fresh"}]
        assert controller.state.last_filters == {"status": "Active"}
        assert controller.loading is False

    @pytest.mark.asyncio
    async def test_refresh_replays_last_call(self, settings):
        client, builder = make_client(
            QueryResult(data=[], count=0),
            QueryResult(data=[], count=0),
        )
        controller = make_controller(settings, client)

        await controller.list_records({"category": "Retail"}, {"page": 3, "pageSize": 5})
        await controller.refresh()

        assert builder.execute.await_count == 2
        assert builder.range.call_args_list[1].args == (10, 14)
        assert builder.eq.call_args_list[-1].args == ("category", "Retail")


class TestMutations:
    @pytest.mark.asyncio
    async def test_create_stamps_and_refreshes_listed_view(self, settings):
        created = {"id": "b9", "name": "Acme"}
        client, builder = make_client(
            QueryResult(data=[], count=0),
            QueryResult(data=[created], count=1),
            QueryResult(data=[created], count=1),
        )
        controller = make_controller(settings, client)
        await controller.list_records()

        result = await controller.create({"name": "Acme", "organization_id": "org-z"})

        assert result == created
        (row,), _ = builder.insert.call_args
        assert row == {
            "name": "Acme",
            "organization_id": "org-a",
            "created_by": "u1",
            "created_at": FIXED_NOW,
            "updated_at": FIXED_NOW,
        }
        assert builder.execute.await_count == 3
        assert controller.data == [created]
        assert controller.loading is False

    @pytest.mark.asyncio
    async def test_create_without_listing_skips_refresh(self, settings):
        created = {"id": "b9", "name": "Acme"}
        client, builder = make_client(QueryResult(data=[created], count=1))
        controller = make_controller(settings, client)

        result = await controller.create({"name": "Acme"})

        assert result == created
        builder.select.assert_not_called()
        assert builder.execute.await_count == 1
        assert controller.data == []
        assert controller.error is None

    @pytest.mark.asyncio
    async def test_bulk_create_without_listing_skips_refresh(self, settings):
        rows = [{"id": "b1"}, {"id": "b2"}]
        client, builder = make_client(QueryResult(data=rows, count=2))
        controller = make_controller(settings, client)

        created = await controller.bulk_create([{"name": "One"}, {"name": "Two"}])

        assert created == rows
        builder.select.assert_not_called()
        assert builder.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_refresh_after_create_is_kept_apart(self, settings):
        created = {"id": "b9", "name": "Acme"}
        client, _ = make_client(
            QueryResult(data=[{"id": "b1"}], count=1),
            QueryResult(data=[created], count=1),
            QueryResult(error=QueryError("connection reset", code="08006")),
        )
        controller = make_controller(settings, client)
        await controller.list_records()

        result = await controller.create({"name": "Acme"})

        assert result == created
        assert controller.error is None
        assert isinstance(controller.refresh_error, TransportError)
        assert controller.refresh_error.code == "08006"
        assert controller.data == [{"id": "b1"}]
        assert controller.loading is False

    @pytest.mark.asyncio
    async def test_create_stamps_configured_timestamp_field(self, settings):
        settings = settings.model_copy(update={"timestamp_field": "published_at"})
        client, builder = make_client(QueryResult(data=[{"id": "b9"}], count=1))
        controller = make_controller(settings, client)

        await controller.create({"name": "Acme"})

        (row,), _ = builder.insert.call_args
        assert row["published_at"] == FIXED_NOW
        assert row["created_at"] == FIXED_NOW

    @pytest.mark.asyncio
    async def test_update_failure_keeps_records(self, settings):
        client, _ = make_client(
            QueryResult(data=[{"id": "b1", "name": "Old"}], count=1),
            QueryResult(error=QueryError("value too long", code="22001")),
        )
        controller = make_controller(settings, client)
        await controller.list_records()

        result = await controller.update("b1", {"name": "x" * 1000})

        assert result is None
        assert isinstance(controller.error, TransportError)
        assert controller.data == [{"id": "b1", "name": "Old"}]

    @pytest.mark.asyncio
    async def test_update_drops_identity_and_org_fields(self, settings):
        client, builder = make_client(QueryResult(data=[{"id": "b1"}], count=1))
        controller = make_controller(settings, client)

        await controller.update("b1", {"id": "other", "organization_id": "org-b", "name": "N"})

        (patch,), _ = builder.update.call_args
        assert patch == {"name": "N", "updated_at": FIXED_NOW}

    @pytest.mark.asyncio
    async def test_bulk_update_collects_successes_and_first_failure(self, settings):
        client, _ = make_client(
            QueryResult(data=[{"id": "b1", "name": "One"}], count=1),
            QueryResult(error=QueryError("deadlock detected", code="40P01")),
            QueryResult(data=[], count=0),
        )
        controller = make_controller(settings, client)

        updated = await controller.bulk_update(
            [
                {"id": "b1", "data": {"name": "One"}},
                ("b2", {"name": "Two"}),
                {"id": "b3", "data": {"name": "Three"}},
            ]
        )

        assert updated == [{"id": "b1", "name": "One"}]
        assert isinstance(controller.error, TransportError)
        assert controller.error.message == "deadlock detected"
        assert list(controller.state.item_errors) == ["b2"]
        assert controller.state.item_errors["b2"].code == "40P01"
        assert controller.loading is False

    @pytest.mark.asyncio
    async def test_bulk_remove_empty_is_noop(self, settings):
        client, _ = make_client()
        controller = make_controller(settings, client)

        assert await controller.bulk_remove([]) is True
        client.table.assert_not_called()
