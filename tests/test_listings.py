"""Tests for the data fetchers — filter composition and row serialization."""

from datetime import date

import pytest
from sqlalchemy.dialects import postgresql

from rebooked.models.listings import Accommodation, Bursary
from rebooked.orchestrator.errors import DataAccessError
from rebooked.orchestrator.schemas import Preferences
from rebooked.services.listings import ListingFetcher, accommodations_query, bursaries_query


def compiled(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


def accommodation(name: str, **kwargs) -> Accommodation:
    kwargs.setdefault("type", "residence")
    kwargs.setdefault("address", f"{name} Street")
    kwargs.setdefault("status", "active")
    return Accommodation(property_name=name, **kwargs)


class TestQueryComposition:
    def test_status_only_without_preferences(self):
        sql = compiled(accommodations_query(Preferences()))
        assert "accommodations.status = 'active'" in sql
        assert "university" not in sql.split("WHERE")[1]
        assert "monthly_cost <=" not in sql

    def test_university_and_budget(self):
        sql = compiled(accommodations_query(Preferences.from_raw({"university": "U", "maxBudget": 5000})))
        where = sql.split("WHERE")[1]
        assert "accommodations.university = 'U'" in where
        assert "accommodations.monthly_cost <= 5000" in where
        assert "accommodations.city =" not in where
        assert where.count(" AND ") == 2

    def test_omitted_budget_drops_clause(self):
        sql = compiled(accommodations_query(Preferences.from_raw({"university": "U", "maxBudget": ""})))
        assert "monthly_cost" not in sql.split("WHERE")[1]

    def test_bursaries_ignore_preferences(self):
        where = compiled(bursaries_query()).split("WHERE")[1]
        assert where.strip() == "bursaries.status = 'active'"


class TestListingFetcher:
    @pytest.fixture
    async def seeded(self, session_factory):
        async with session_factory() as session:
            session.add_all([
                accommodation("Hatfield Studios", university="U", city="Pretoria", monthly_cost=4500),
                accommodation("Sunnyside Lofts", university="U", city="Pretoria", monthly_cost=6500),
                accommodation("Braam Rooms", university="W", city="Johannesburg", monthly_cost=3000),
                accommodation("Closed House", university="U", city="Pretoria", monthly_cost=2000, status="inactive"),
                Bursary(name="Funza Lushaka", provider="DBE", status="active", closing_date=date(2026, 1, 31)),
                Bursary(name="Old Fund", provider="X", status="closed"),
            ])
            await session.commit()
        return session_factory

    @pytest.mark.asyncio
    async def test_university_and_budget(self, seeded):
        accommodations, bursaries = await ListingFetcher(seeded).fetch(
            Preferences.from_raw({"university": "U", "maxBudget": 5000}),
        )
        assert [a["property_name"] for a in accommodations] == ["Hatfield Studios"]
        assert [b["name"] for b in bursaries] == ["Funza Lushaka"]

    @pytest.mark.asyncio
    async def test_without_budget_no_upper_limit(self, seeded):
        accommodations, _ = await ListingFetcher(seeded).fetch(Preferences.from_raw({"university": "U"}))
        assert sorted(a["property_name"] for a in accommodations) == ["Hatfield Studios", "Sunnyside Lofts"]

    @pytest.mark.asyncio
    async def test_city_filter(self, seeded):
        accommodations, _ = await ListingFetcher(seeded).fetch(Preferences(city="Johannesburg"))
        assert [a["property_name"] for a in accommodations] == ["Braam Rooms"]

    @pytest.mark.asyncio
    async def test_rows_are_json_ready(self, seeded):
        _, bursaries = await ListingFetcher(seeded).fetch(Preferences())
        row = bursaries[0]
        assert isinstance(row["id"], str)
        assert row["closing_date"] == "2026-01-31"

    @pytest.mark.asyncio
    async def test_query_failure_raises_data_access_error(self, session_factory):
        async with session_factory() as session:
            await session.run_sync(lambda s: Accommodation.__table__.drop(s.connection()))
            await session.commit()

        with pytest.raises(DataAccessError) as exc:
            await ListingFetcher(session_factory).fetch(Preferences())
        assert exc.value.message.startswith("Failed to fetch accommodations")
