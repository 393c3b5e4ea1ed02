import asyncpg
import pytest
import pytest_asyncio
from testcontainers.postgres import PostgresContainer

from genericdao.db_context import DatabaseManager

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS Person (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        age INTEGER NOT NULL,
        salary DOUBLE PRECISION NOT NULL,
        active BOOLEAN NOT NULL
    );
    """,
    "CREATE TABLE IF NOT EXISTS Customer (id INTEGER PRIMARY KEY, name TEXT NOT NULL);",
    """
    CREATE TABLE IF NOT EXISTS Gadget (
        id INTEGER PRIMARY KEY,
        label TEXT NOT NULL,
        price NUMERIC(10, 2)
    );
    """,
    "CREATE TABLE IF NOT EXISTS Tag (id INTEGER PRIMARY KEY);",
    "CREATE TABLE IF NOT EXISTS Note (title TEXT, body TEXT);",
    """
    CREATE TABLE IF NOT EXISTS "OrderLine" (
        "id" INTEGER PRIMARY KEY,
        "clientId" INTEGER NOT NULL,
        "quantity" INTEGER NOT NULL,
        "unitPrice" DOUBLE PRECISION
    );
    """,
]


@pytest.fixture(scope="session")
def postgres_container():
    """Start a PostgreSQL test container for the session."""
    container = PostgresContainer("postgres:17")
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"PostgreSQL container unavailable: {e}")
    try:
        yield container
    finally:
        container.stop()


@pytest_asyncio.fixture
async def pool(postgres_container):
    """Create a pool connected to the test container for each test."""
    host = postgres_container.get_container_host_ip()
    port = postgres_container.get_exposed_port(5432)
    dsn = f"postgresql://{postgres_container.username}:{postgres_container.password}@{host}:{port}/{postgres_container.dbname}"

    # Create a new pool for each test to avoid event loop issues
    pool = await asyncpg.create_pool(dsn, min_size=1, max_size=5)

    async with pool.acquire() as conn:
        for statement in SCHEMA:
            await conn.execute(statement)

    await DatabaseManager.add_pool("test_db", pool)

    yield pool

    async with pool.acquire() as conn:
        await conn.execute('TRUNCATE TABLE Person, Customer, Gadget, Tag, Note, "OrderLine";')

    DatabaseManager.remove_pool("test_db")
    await pool.close()
