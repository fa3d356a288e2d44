import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import text  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from delivery_ledger.core.config import settings  # noqa: E402
from delivery_ledger.db.session import build_engine, build_sessionmaker  # noqa: E402

# Children first so foreign keys never block the truncate.
TABLES = [
    ("ratings", "Ratings"),
    ("transactions", "Transactions"),
    ("orders", "Orders"),
    ("users", "Users"),
]


async def reset_database() -> bool:
    """Truncates every table and restarts identity sequences.

    Returns:
        bool: True if reset was successful, False otherwise.
    """
    print("Starting database reset...")
    print("-" * 60)

    engine = build_engine(settings.database_url)
    sessionmaker = build_sessionmaker(engine)
    try:
        async with sessionmaker() as session:
            try:
                for table_name, display_name in TABLES:
                    await session.execute(
                        text(f"TRUNCATE TABLE {table_name} RESTART IDENTITY CASCADE;")
                    )
                    print(f"Truncated table: {display_name}")
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                print(f"\nError during reset: {e}")
                return False

            print("-" * 60)
            print("Database reset successful")
            print("\nCurrent state:")
            for table_name, display_name in TABLES:
                result = await session.execute(
                    text(f"SELECT COUNT(*) FROM {table_name}")
                )
                print(f"  {display_name}: {result.scalar()} records")
            return True
    finally:
        await engine.dispose()


def confirm_reset() -> bool:
    print("\nWARNING: This operation will delete ALL orders, balances and users")
    print("Only use in development/testing environments")
    print("\nDo you want to continue? (yes/no): ", end="")

    response = input().strip().lower()
    return response in ["yes", "y"]


async def main() -> None:
    print("\n" + "=" * 60)
    print("DATABASE RESET")
    print("=" * 60)

    if not confirm_reset():
        print("\nOperation cancelled by user")
        sys.exit(0)

    if await reset_database():
        print("\nReset complete. Database is clean.")
        sys.exit(0)
    print("\nReset failed. Check logs for details.")
    sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
