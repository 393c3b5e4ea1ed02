"""
End-to-end tests of EntityMapper against PostgreSQL.
"""

import asyncio
from decimal import Decimal

import pytest

from genericdao.db_context import DatabaseManager, PoolConnectionProvider
from genericdao.descriptor import DescriptorRegistry
from genericdao.entity_mapper import EntityMapper, MapperConfig
from genericdao.exceptions import StatementError
from tests.people_entities import Customer, Gadget, OrderLine, Person, Tag


@pytest.fixture
def people(pool):
    return EntityMapper(Person, provider=PoolConnectionProvider(pool))


@pytest.fixture
def sample_people():
    return [
        Person(id=1, name="Ada", age=36, salary=1.5, active=True),
        Person(id=2, name="Bea", age=41, salary=2.25, active=False),
        Person(id=3, name="Cy", age=29, salary=0.0, active=True),
    ]


class TestRoundTrip:
    @pytest.mark.asyncio
    async def test_insert_then_find_by_id(self, people, sample_people):
        for person in sample_people:
            assert (await people.insert(person)).succeeded

        for person in sample_people:
            outcome = await people.find_by_id(person.id)
            assert outcome.succeeded
            assert outcome.value == person

    @pytest.mark.asyncio
    async def test_find_by_id_not_found(self, people):
        outcome = await people.find_by_id(999)

        assert outcome.is_not_found

    @pytest.mark.asyncio
    async def test_find_all_has_no_duplicates_or_omissions(self, people, sample_people):
        for person in sample_people:
            await people.insert(person)

        outcome = await people.find_all()

        assert outcome.succeeded
        assert sorted(p.id for p in outcome.value) == [1, 2, 3]
        assert {p.name for p in outcome.value} == {"Ada", "Bea", "Cy"}

    @pytest.mark.asyncio
    async def test_find_all_empty(self, people):
        outcome = await people.find_all()

        assert outcome.succeeded
        assert outcome.value == []

    @pytest.mark.asyncio
    async def test_dataclass_with_numeric(self, pool):
        gadgets = EntityMapper(Gadget, provider=PoolConnectionProvider(pool))

        await gadgets.insert(Gadget(1, "lamp", Decimal("9.99")))
        outcome = await gadgets.find_by_id(1)

        assert outcome.value == Gadget(1, "lamp", Decimal("9.99"))

    @pytest.mark.asyncio
    async def test_apostrophe_survives_bound_insert(self, pool):
        customers = EntityMapper(Customer, provider=PoolConnectionProvider(pool))

        await customers.insert(Customer(id=1, name="O'Brien"))

        assert (await customers.find_by_id(1)).value.name == "O'Brien"

    @pytest.mark.asyncio
    async def test_named_pool_provider(self, pool):
        customers = EntityMapper(Customer, config=MapperConfig(db_name="test_db"))

        await customers.insert(Customer(id=5, name="Ada"))

        assert (await customers.find_by_id(5)).succeeded


class TestUpdateAndDelete:
    @pytest.mark.asyncio
    async def test_update_changes_only_non_key_fields(self, people, sample_people):
        for person in sample_people:
            await people.insert(person)

        changed = Person(id=2, name="Beatrice", age=42, salary=3.0, active=True)
        assert (await people.update(changed)).succeeded

        assert (await people.find_by_id(2)).value == changed
        assert (await people.find_by_id(1)).value == sample_people[0]
        assert (await people.find_by_id(3)).value == sample_people[2]

    @pytest.mark.asyncio
    async def test_delete_then_not_found(self, people, sample_people):
        for person in sample_people:
            await people.insert(person)

        assert (await people.delete(sample_people[0])).succeeded

        assert (await people.find_by_id(1)).is_not_found
        remaining = (await people.find_all()).value
        assert sorted(p.id for p in remaining) == [2, 3]

    @pytest.mark.asyncio
    async def test_update_of_key_only_type_fails_quietly(self, pool):
        tags = EntityMapper(Tag, provider=PoolConnectionProvider(pool))
        await tags.insert(Tag(id=1))

        outcome = await tags.update(Tag(id=1))

        assert outcome.failed
        assert isinstance(outcome.error, StatementError)


class TestLiteralMode:
    @pytest.mark.asyncio
    async def test_literal_round_trip(self, pool, sample_people):
        people = EntityMapper(
            Person,
            provider=PoolConnectionProvider(pool),
            config=MapperConfig(literal_values=True),
        )

        await people.insert(sample_people[0])
        await people.update(Person(id=1, name="Ada L", age=37, salary=1.5, active=False))

        found = (await people.find_by_id(1)).value
        assert found == Person(id=1, name="Ada L", age=37, salary=1.5, active=False)

        await people.delete(found)
        assert (await people.find_by_id(1)).is_not_found

    @pytest.mark.asyncio
    async def test_literal_apostrophe_loses_the_write(self, pool):
        customers = EntityMapper(
            Customer,
            provider=PoolConnectionProvider(pool),
            config=MapperConfig(literal_values=True),
        )

        outcome = await customers.insert(Customer(id=1, name="O'Brien"))

        # No exception reaches the caller; the row is simply not there
        assert outcome.failed
        assert isinstance(outcome.error, StatementError)
        assert (await customers.find_by_id(1)).is_not_found


class TestQuotedIdentifiers:
    @pytest.mark.asyncio
    async def test_camel_case_round_trip(self, pool):
        lines = EntityMapper(
            OrderLine,
            provider=PoolConnectionProvider(pool),
            config=MapperConfig(quote_identifiers=True),
        )
        line = OrderLine(id=1, clientId=7, quantity=3, unitPrice=2.5)

        assert (await lines.insert(line)).succeeded
        assert (await lines.find_by_id(1)).value == line

        changed = OrderLine(id=1, clientId=8, quantity=4, unitPrice=None)
        assert (await lines.update(changed)).succeeded
        assert (await lines.find_by_id(1)).value == changed

        assert (await lines.delete(changed)).succeeded
        assert (await lines.find_by_id(1)).is_not_found

    @pytest.mark.asyncio
    async def test_unquoted_camel_case_table_is_not_found(self, pool):
        lines = EntityMapper(OrderLine, provider=PoolConnectionProvider(pool))

        outcome = await lines.find_by_id(1)

        assert outcome.failed
        assert isinstance(outcome.error, StatementError)


class TestConcurrencyAndRelease:
    @pytest.mark.asyncio
    async def test_concurrent_find_by_id_shares_descriptor(self, pool, sample_people):
        registry = DescriptorRegistry()
        provider = PoolConnectionProvider(pool)
        await EntityMapper(Person, provider=provider).insert(sample_people[0])

        daos = [EntityMapper(Person, provider=provider, registry=registry) for _ in range(20)]
        outcomes = await asyncio.gather(*(dao.find_by_id(1) for dao in daos))

        assert all(outcome.value == sample_people[0] for outcome in outcomes)
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_connections_released_after_failures(self, pool):
        tags = EntityMapper(Tag, provider=PoolConnectionProvider(pool))

        # More failing calls than the pool holds connections
        for _ in range(20):
            assert (await tags.update(Tag(id=1))).failed

        assert (await tags.find_all()).succeeded

    @pytest.mark.asyncio
    async def test_tracker_sees_sql(self, people):
        async with DatabaseManager.track_queries() as tracker:
            await people.find_all()

        assert tracker.get_sql() == ["SELECT * FROM Person"]
