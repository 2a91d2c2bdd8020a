"""
Tests for repository orchestration: counts, degradation, transactions
(mocked database connection)
"""

from collections import defaultdict
from uuid import uuid4

import asyncpg
import pytest

from query.validators import ValidationError
from repositories import (
    EntityRepository, NotFoundError, RepositoryContainer, TripChildRepository, TripsRepository,
)


def _row(**values):
    """A result row where every unspecified output path is NULL"""
    return defaultdict(lambda: None, values)


class TestSelect:

    @pytest.mark.asyncio
    async def test_unfiltered_listing_reuses_total(self, fake_db, mock_conn):
        mock_conn.fetchval.return_value = 2
        mock_conn.fetch.return_value = [_row(id=uuid4()), _row(id=uuid4())]
        repo = EntityRepository(fake_db, "category")

        envelope = await repo.select({"page": "1", "results": "10"})

        assert envelope.metadata.total == 2
        assert envelope.metadata.total_filtered == 2
        assert envelope.metadata.records_per_page == 10
        assert envelope.metadata.source == "category"
        assert len(envelope.data) == 2
        assert envelope.errors == []
        assert mock_conn.fetchval.await_count == 1

    @pytest.mark.asyncio
    async def test_filtered_listing_runs_both_counts(self, fake_db, mock_conn):
        mock_conn.fetchval.side_effect = [10, 1]
        mock_conn.fetch.return_value = [_row(id=uuid4())]
        repo = EntityRepository(fake_db, "category")

        envelope = await repo.select({"filter": "beach"})

        assert envelope.metadata.total == 10
        assert envelope.metadata.total_filtered == 1
        filtered_sql = mock_conn.fetchval.await_args_list[1].args[0]
        assert "total_filtered" in filtered_sql

    @pytest.mark.asyncio
    async def test_row_query_skipped_when_nothing_matches(self, fake_db, mock_conn):
        mock_conn.fetchval.side_effect = [10, 0]
        repo = EntityRepository(fake_db, "category")

        envelope = await repo.select({"filter": "nothing"})

        assert envelope.data == []
        mock_conn.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_count_failure_is_recorded_not_raised(self, fake_db, mock_conn):
        mock_conn.fetchval.side_effect = asyncpg.PostgresError("count exploded")
        mock_conn.fetch.return_value = [_row(id=uuid4())]
        repo = EntityRepository(fake_db, "category")

        envelope = await repo.select({"filter": "x"})

        assert len(envelope.errors) == 2
        assert "count exploded" in envelope.errors[0]
        assert envelope.metadata.total == 0
        assert len(envelope.data) == 1

    @pytest.mark.asyncio
    async def test_row_query_failure_propagates(self, fake_db, mock_conn):
        mock_conn.fetchval.return_value = 3
        mock_conn.fetch.side_effect = asyncpg.PostgresError("row fetch failed")
        repo = EntityRepository(fake_db, "category")

        with pytest.raises(asyncpg.PostgresError):
            await repo.select()

    @pytest.mark.asyncio
    async def test_invalid_params_never_reach_database(self, fake_db, mock_conn):
        repo = EntityRepository(fake_db, "category")

        with pytest.raises(ValidationError):
            await repo.select({"nope": "1"})

        mock_conn.fetchval.assert_not_awaited()
        mock_conn.fetch.assert_not_awaited()


class TestQueryOne:

    @pytest.mark.asyncio
    async def test_returns_single_tree(self, fake_db, mock_conn):
        entity_id = uuid4()
        mock_conn.fetch.return_value = [_row(id=entity_id, **{"title.en": "Beach"})]
        repo = EntityRepository(fake_db, "category")

        result = await repo.query_one(str(entity_id))

        assert result["id"] == str(entity_id)
        assert result["title"]["en"] == "Beach"
        sql, *params = mock_conn.fetch.await_args.args
        assert "WHERE category.id = $1" in sql
        assert params == [entity_id, 1, 0]

    @pytest.mark.asyncio
    async def test_missing_row_raises_not_found(self, fake_db, mock_conn):
        repo = EntityRepository(fake_db, "category")
        with pytest.raises(NotFoundError):
            await repo.query_one(uuid4())


class TestWrites:

    @pytest.mark.asyncio
    async def test_insert_then_reads_back(self, fake_db, mock_conn):
        entity_id = uuid4()
        mock_conn.fetch.return_value = [_row(id=entity_id)]
        repo = EntityRepository(fake_db, "location")

        result = await repo.insert({"id": entity_id, "country_id": None, "region_id": None})

        assert result["id"] == str(entity_id)
        assert mock_conn.execute.await_args.args[0].startswith("INSERT INTO location (id, country_id, region_id)")

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields_before_writing(self, fake_db, mock_conn):
        repo = EntityRepository(fake_db, "category")

        with pytest.raises(ValidationError):
            await repo.update(uuid4(), {"colour": "red"})

        mock_conn.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_unknown_id_raises_not_found(self, fake_db, mock_conn):
        mock_conn.execute.return_value = "UPDATE 0"
        repo = EntityRepository(fake_db, "category")

        with pytest.raises(NotFoundError):
            await repo.update(uuid4(), {"active": False})

    @pytest.mark.asyncio
    async def test_delete_nothing_raises_not_found(self, fake_db, mock_conn):
        mock_conn.execute.return_value = "DELETE 0"
        repo = EntityRepository(fake_db, "category")

        with pytest.raises(NotFoundError):
            await repo.delete(uuid4())

    @pytest.mark.asyncio
    async def test_delete_returns_count(self, fake_db, mock_conn):
        mock_conn.execute.side_effect = ["DELETE 1", "DELETE 1"]
        repo = EntityRepository(fake_db, "category")

        assert await repo.delete(uuid4()) == 1


class TestTrips:

    @pytest.mark.asyncio
    async def test_default_itinerary_and_owner_inserted_with_trip(self, fake_db, mock_conn):
        trip_id, owner_id = uuid4(), uuid4()
        mock_conn.fetch.return_value = [_row(id=trip_id, participants=1)]
        repo = TripsRepository(fake_db)

        result = await repo.insert_with_owner({"id": trip_id, "scope": "user"}, owner_id)

        assert result["participants"] == 1
        statements = [c.args for c in mock_conn.execute.await_args_list]
        assert [s[0].split(" (")[0] for s in statements] == [
            "INSERT INTO trip",
            "INSERT INTO trip_itinerary",
            "INSERT INTO translation",
            "INSERT INTO trip_participant",
        ]

        trip_sql, *trip_args = statements[0]
        assert trip_sql.startswith("INSERT INTO trip (id, itinerary_id, scope)")
        itinerary_id = trip_args[1]

        itinerary_args = statements[1][1:4]
        assert itinerary_args == (itinerary_id, trip_id, owner_id)

        title_args = statements[2][1:]
        assert title_args[1:4] == (itinerary_id, "trip_itinerary", "title")
        assert title_args[4:] == ("Padrão", "Estándar", "Default")

        assert statements[3][2:5] == (trip_id, owner_id, "owner")

    @pytest.mark.asyncio
    async def test_role_checks_use_their_role_sets(self, fake_db, mock_conn):
        mock_conn.fetchval.return_value = 1
        repo = TripsRepository(fake_db)

        assert await repo.is_trip_manager(uuid4(), uuid4()) is True
        sql, _, _, roles = mock_conn.fetchval.await_args.args
        assert "FROM trip_participant WHERE" in sql
        assert roles == ["owner", "admin"]

        await repo.is_trip_owner(uuid4(), uuid4())
        assert mock_conn.fetchval.await_args.args[3] == ["owner"]

        await repo.is_participant(uuid4(), uuid4())
        assert mock_conn.fetchval.await_args.args[3] == ["owner", "admin", "editor", "viewer"]

    @pytest.mark.asyncio
    async def test_no_matching_participant_row(self, fake_db, mock_conn):
        mock_conn.fetchval.return_value = 0
        repo = TripsRepository(fake_db)

        assert await repo.is_trip_owner(uuid4(), uuid4()) is False

    @pytest.mark.asyncio
    async def test_delete_removes_owned_rows_first(self, fake_db, mock_conn):
        mock_conn.execute.side_effect = ["DELETE 1", "DELETE 1", "DELETE 0", "DELETE 2", "DELETE 1", "DELETE 2"]
        repo = TripsRepository(fake_db)

        assert await repo.delete(uuid4()) == 1
        statements = [c.args[0] for c in mock_conn.execute.await_args_list]
        assert statements[0].startswith("DELETE FROM translation WHERE parent_id IN (SELECT id FROM trip_itinerary")
        assert statements[1:4] == [
            "DELETE FROM trip_itinerary WHERE trip_id = ANY($1)",
            "DELETE FROM trip_invite WHERE trip_id = ANY($1)",
            "DELETE FROM trip_participant WHERE trip_id = ANY($1)",
        ]
        assert statements[4] == "DELETE FROM trip WHERE id = ANY($1)"


class TestTripChildRepository:

    @pytest.mark.asyncio
    async def test_listing_is_scoped_to_the_trip(self, fake_db, mock_conn):
        trip_id = uuid4()
        mock_conn.fetchval.side_effect = [5, 0]
        repo = TripChildRepository(fake_db, "itinerary")

        envelope = await repo.select_for_trip(str(trip_id), {"trip_id": str(uuid4())})

        assert envelope.metadata.source == "trip_itinerary"
        assert envelope.metadata.total_filtered == 0
        filtered_sql, *args = mock_conn.fetchval.await_args_list[1].args
        assert "trip_itinerary.trip_id = $1" in filtered_sql
        assert args == [trip_id]

    @pytest.mark.asyncio
    async def test_row_of_another_trip_is_not_found(self, fake_db, mock_conn):
        invite_id = uuid4()
        mock_conn.fetch.return_value = [_row(id=invite_id, trip_id=uuid4(), email="ana@example.com")]
        repo = TripChildRepository(fake_db, "invite")

        with pytest.raises(NotFoundError):
            await repo.query_one_for_trip(uuid4(), invite_id)

    @pytest.mark.asyncio
    async def test_row_of_the_trip_is_returned(self, fake_db, mock_conn):
        invite_id, trip_id = uuid4(), uuid4()
        mock_conn.fetch.return_value = [_row(id=invite_id, trip_id=trip_id, email="ana@example.com")]
        repo = TripChildRepository(fake_db, "invite")

        row = await repo.query_one_for_trip(str(trip_id), invite_id)

        assert row["email"] == "ana@example.com"


def test_container_builds_every_resource(fake_db):
    repos = RepositoryContainer(fake_db)

    assert repos.categories.entity == "category"
    assert repos.users.config.table == "users"
    assert isinstance(repos.trips, TripsRepository)
    assert repos.itineraries.config.table == "trip_itinerary"
    assert repos.invites.entity == "invite"


def test_unknown_entity_is_rejected(fake_db):
    with pytest.raises(ValueError, match="Unknown entity"):
        EntityRepository(fake_db, "rating")
