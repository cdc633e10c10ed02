"""Integration tests for CRUDController against an SQLite store."""

import pytest
import pytest_asyncio

from opsdesk.domain.entities import TenantContext
from opsdesk.domain.services import CRUDController, build_ability

pytestmark = pytest.mark.integration

BUSINESS = "eco_business_directory"
ORG_A = "org-a"
ORG_B = "org-b"


def controller_for(store_client, settings, tenant, collection=BUSINESS, clock=None):
    return CRUDController(
        store_client,
        collection,
        tenant,
        build_ability(tenant.role, tenant.user_segment, tenant.organization_id),
        settings=settings,
        clock=clock,
    )


def _business(i: int, org: str):
    return {
        "id": f"biz-{i:02d}",
        "name": f"Business {i:02d}",
        "organization_id": org,
        "status": "Active" if i % 3 else "Pending",
        "created_at": f"2024-02-{i:02d}T09:00:00+00:00",
        "updated_at": f"2024-02-{i:02d}T09:00:00+00:00",
    }


@pytest_asyncio.fixture
async def businesses(seed):
    """25 businesses in org A and 5 in org B."""
    await seed(BUSINESS, [_business(i, ORG_A) for i in range(1, 26)])
    await seed(BUSINESS, [_business(i, ORG_B) | {"id": f"other-{i}"} for i in range(1, 6)])


@pytest.fixture
def partner():
    return TenantContext(user_segment="partner", organization_id=ORG_A, user_id="user-a", role="admin")


@pytest.fixture
def staff():
    return TenantContext(user_segment="internal", user_id="staff-1", role="admin")


class TestTenantIsolation:
    @pytest.mark.asyncio
    async def test_partner_only_sees_own_organization(self, store_client, settings, partner, businesses):
        controller = controller_for(store_client, settings, partner)

        await controller.list_records(None, {"page": 1, "pageSize": 100})

        assert controller.error is None
        assert len(controller.data) == 25
        assert {r["organization_id"] for r in controller.data} == {ORG_A}

    @pytest.mark.asyncio
    async def test_partner_cannot_fetch_other_org_by_id(self, store_client, settings, partner, businesses):
        controller = controller_for(store_client, settings, partner)

        own = await controller.get_by_id("biz-01")
        foreign = await controller.get_by_id("other-1")

        assert own["organization_id"] == ORG_A
        assert foreign is None
        assert controller.error is None

    @pytest.mark.asyncio
    async def test_internal_sees_every_organization(self, store_client, settings, staff, businesses):
        controller = controller_for(store_client, settings, staff)

        await controller.list_records(None, {"page": 1, "pageSize": 100})

        assert len(controller.data) == 30
        assert {r["organization_id"] for r in controller.data} == {ORG_A, ORG_B}

    @pytest.mark.asyncio
    async def test_partner_cannot_update_or_delete_other_org(self, store_client, settings, partner, businesses):
        controller = controller_for(store_client, settings, partner)

        updated = await controller.update("other-1", {"name": "Hijacked"})
        removed = await controller.remove("other-1")

        assert updated is None
        assert removed is False

        staff_view = controller_for(
            store_client, settings, TenantContext(user_segment="internal", role="admin")
        )
        record = await staff_view.get_by_id("other-1")
        assert record["name"] == "Business 01"

    @pytest.mark.asyncio
    async def test_zones_are_shared(self, store_client, settings, partner, seed):
        await seed("eco_zones", [{"id": "z1", "name": "Free Zone", "organization_id": ORG_B}])
        controller = controller_for(store_client, settings, partner, collection="zones")

        await controller.list_records()

        assert [r["id"] for r in controller.data] == ["z1"]


class TestPagination:
    @pytest.mark.asyncio
    async def test_second_page_of_twenty_five(self, store_client, settings, partner, businesses):
        """Second page of 10 holds the 11th to 20th newest records; total is the exact count."""
        controller = controller_for(store_client, settings, partner)

        await controller.list_records(None, {"page": 2, "pageSize": 10})

        assert [r["id"] for r in controller.data] == [f"biz-{i:02d}" for i in range(15, 5, -1)]
        assert controller.total == 25

    @pytest.mark.asyncio
    async def test_filters_and_search(self, store_client, settings, partner, businesses):
        controller = controller_for(store_client, settings, partner)

        await controller.list_records(
            {"status": "Pending", "search": "business 1", "dateTo": "2024-02-20"},
            {"page": 1, "pageSize": 10, "sortBy": "name", "sortOrder": "asc"},
        )

        assert [r["id"] for r in controller.data] == ["biz-12", "biz-15", "biz-18"]
        assert controller.total == 3

    @pytest.mark.asyncio
    async def test_unknown_sort_column_is_a_transport_error(self, store_client, settings, partner, businesses):
        controller = controller_for(store_client, settings, partner)

        await controller.list_records(None, {"page": 1, "pageSize": 10, "sortBy": "colour"})

        assert controller.error.code == "undefined_column"


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_stamps_org_creator_and_timestamps(self, store_client, settings, partner):
        controller = controller_for(store_client, settings, partner)
        await controller.list_records()

        created = await controller.create({"name": "Acme"})

        assert created["organization_id"] == ORG_A
        assert created["created_by"] == "user-a"
        assert created["created_at"] is not None
        assert created["created_at"] == created["updated_at"]
        assert [r["name"] for r in controller.data] == ["Acme"]
        assert controller.total == 1

    @pytest.mark.asyncio
    async def test_bulk_create_stamps_each_row(self, store_client, settings, partner):
        controller = controller_for(store_client, settings, partner, clock=lambda: "2024-03-01T00:00:00+00:00")
        await controller.list_records()

        created = await controller.bulk_create([{"name": "One"}, {"name": "Two"}])

        assert len(created) == 2
        assert {r["organization_id"] for r in created} == {ORG_A}
        assert {r["created_at"] for r in created} == {"2024-03-01T00:00:00+00:00"}
        assert controller.total == 2


    @pytest.mark.asyncio
    async def test_create_on_unlisted_controller_loads_nothing(self, store_client, settings, partner, businesses):
        controller = controller_for(store_client, settings, partner)

        created = await controller.create({"name": "New"})

        assert created["organization_id"] == ORG_A
        assert controller.data == []
        assert controller.total == 0

        await controller.list_records(None, {"page": 1, "pageSize": 100})
        assert controller.total == 26


class TestUpdate:
    @pytest.mark.asyncio
    async def test_repeated_update_leaves_single_entry(self, store_client, settings, partner, businesses):
        controller = controller_for(store_client, settings, partner)
        await controller.list_records(None, {"page": 1, "pageSize": 30})

        await controller.update("biz-03", {"name": "Renamed", "phone": "555-0100"})
        await controller.update("biz-03", {"name": "Renamed", "phone": "555-0100"})

        matches = [r for r in controller.data if r["id"] == "biz-03"]
        assert len(matches) == 1
        assert matches[0]["name"] == "Renamed"
        assert matches[0]["phone"] == "555-0100"
        assert len(controller.data) == 25

    @pytest.mark.asyncio
    async def test_bulk_update(self, store_client, settings, partner, businesses):
        controller = controller_for(store_client, settings, partner)
        await controller.list_records(None, {"page": 1, "pageSize": 30})

        updated = await controller.bulk_update(
            [
                {"id": "biz-01", "data": {"status": "Closed"}},
                {"id": "biz-02", "data": {"status": "Closed"}},
                {"id": "other-1", "data": {"status": "Closed"}},
            ]
        )

        assert sorted(r["id"] for r in updated) == ["biz-01", "biz-02"]
        assert controller.error is None
        closed = [r["id"] for r in controller.data if r["status"] == "Closed"]
        assert sorted(closed) == ["biz-01", "biz-02"]


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_missing_id_leaves_state(self, store_client, settings, partner, businesses):
        controller = controller_for(store_client, settings, partner)
        await controller.list_records(None, {"page": 1, "pageSize": 10})
        before = list(controller.data)

        removed = await controller.remove("missing-id")

        assert removed is False
        assert controller.data == before
        assert controller.total == 25
        assert controller.error is None

    @pytest.mark.asyncio
    async def test_total_never_negative(self, store_client, settings, partner, seed):
        await seed(BUSINESS, [_business(1, ORG_A)])
        controller = controller_for(store_client, settings, partner)
        await controller.list_records()

        assert await controller.remove("biz-01") is True
        assert await controller.remove("biz-01") is False
        assert await controller.remove("nope") is False

        assert controller.total == 0
        assert controller.data == []

    @pytest.mark.asyncio
    async def test_bulk_remove_counts_only_deleted_rows(self, store_client, settings, partner, businesses):
        controller = controller_for(store_client, settings, partner)
        await controller.list_records(None, {"page": 1, "pageSize": 30})

        ok = await controller.bulk_remove(["biz-01", "biz-02", "other-1", "missing"])

        assert ok is True
        assert controller.total == 23
        assert not {"biz-01", "biz-02"} & {r["id"] for r in controller.data}

        staff_view = controller_for(
            store_client, settings, TenantContext(user_segment="internal", role="admin")
        )
        assert await staff_view.get_by_id("other-1") is not None
