"""
Database setup utilities for examples
"""
import sys
from pathlib import Path

import asyncpg

# Add the parent directory to Python path so we can import genericdao
sys.path.append(str(Path(__file__).parent.parent))

from genericdao.db_context import DatabaseManager


async def setup_postgres_connection(
    host: str = "localhost",
    port: int = 5432,
    database: str = "postgres",
    user: str = "postgres",
    password: str = "postgres",
    pool_name: str = "default"
):
    """
    Set up a connection pool to a local PostgreSQL instance and register it
    with DatabaseManager under pool_name.
    """
    try:
        pool = await asyncpg.create_pool(
            host=host,
            port=port,
            database=database,
            user=user,
            password=password,
            min_size=1,
            max_size=10
        )
        await DatabaseManager.add_pool(pool_name, pool)

        print(f"✅ Connected to PostgreSQL at {host}:{port}/{database} as {user}")
        return pool

    except Exception as e:
        print(f"❌ Failed to connect to PostgreSQL: {e}")
        print(f"Make sure PostgreSQL is running on {host}:{port}")
        raise


async def setup_example_schema(pool_name: str = "default"):
    """
    Create the Person table for examples if it doesn't exist.
    Column order must follow the entity's field order.
    """
    pool = await DatabaseManager.get_pool(pool_name)
    async with pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS Person (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                age INTEGER NOT NULL
            );
        """)
    print("✅ Person table ready")


async def cleanup_example_data(pool_name: str = "default"):
    """
    Clean up example data (optional - for clean runs).
    """
    try:
        pool = await DatabaseManager.get_pool(pool_name)
        async with pool.acquire() as conn:
            await conn.execute("TRUNCATE TABLE Person;")
        print("🧹 Cleaned up existing people")
    except Exception as e:
        print(f"⚠️  Could not clean up data: {e}")


async def close_connections(pool_name: str = "default"):
    """
    Close the example pool (call this at the end of examples).
    """
    pool = DatabaseManager.remove_pool(pool_name)
    if pool is not None:
        await pool.close()
    print("🔒 Closed database connections")
