"""
CRUD Example

Maps a pydantic entity onto the Person table without writing any SQL,
then prints the table the way a UI grid would show it.
"""

import asyncio
import logging

from db_setup import (
    cleanup_example_data,
    close_connections,
    setup_example_schema,
    setup_postgres_connection,
)

from genericdao.db_context import DatabaseManager
from genericdao.entities import BaseEntity
from genericdao.entity_mapper import EntityMapper


class Person(BaseEntity):
    name: str = ""
    age: int = 0


class PersonDao(EntityMapper[Person]):
    pass


async def main():
    logging.basicConfig(level=logging.INFO)

    await setup_postgres_connection()
    await setup_example_schema()
    await cleanup_example_data()

    people = PersonDao()

    async with DatabaseManager.track_queries() as tracker:
        await people.insert(Person(id=1, name="Ada", age=36))
        await people.insert(Person(id=2, name="Grace", age=45))
        await people.update(Person(id=2, name="Grace Hopper", age=46))

        outcome = await people.find_by_id(2)
        print(f"\nfind_by_id(2) -> {outcome.status.value}: {outcome.value}")

        missing = await people.find_by_id(99)
        print(f"find_by_id(99) -> {missing.status.value}")

        # Duplicate key: reported as a FAILED outcome, never raised
        duplicate = await people.insert(Person(id=1, name="Ada again"))
        print(f"duplicate insert -> {duplicate.status.value}: {duplicate.error}")

        everyone = (await people.find_all()).value or []
        print(f"\n{people.header()}")
        for row in people.tabulate(everyone):
            print(row)

        print(f"\nExecuted {tracker.count()} statements:")
        for query_log in tracker.get_queries():
            print(f"  {query_log.query}  {query_log.params}")

    await close_connections()


if __name__ == "__main__":
    asyncio.run(main())
