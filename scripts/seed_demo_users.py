import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from delivery_ledger.core.config import settings  # noqa: E402
from delivery_ledger.core.enums import UserRole  # noqa: E402
from delivery_ledger.db.repositories import UserRepository  # noqa: E402
from delivery_ledger.db.session import build_engine, build_sessionmaker  # noqa: E402
from delivery_ledger.schemas.users import UserCreate  # noqa: E402
from delivery_ledger.services.user_service import UserService  # noqa: E402

DEMO_PASSWORD = "demo1234"

DEMO_USERS = [
    ("admin@demo.com", UserRole.ADMIN, "System Admin", "01001234567"),
    ("dispatcher@demo.com", UserRole.DISPATCHER, "Ahmed Dispatcher", "01001234568"),
    ("restaurant@demo.com", UserRole.RESTAURANT, "El Reef Restaurant", "01001234569"),
    ("driver@demo.com", UserRole.DRIVER, "Mohamed Driver", "01001234570"),
]


async def seed_demo_users() -> int:
    """Creates one account per role, skipping emails that already exist.

    Returns:
        int: Number of users created.
    """
    engine = build_engine(settings.database_url)
    sessionmaker = build_sessionmaker(engine)
    created = 0

    print("Seeding demo users...")
    print("-" * 60)

    try:
        async with sessionmaker() as session:
            for email, role, full_name, phone in DEMO_USERS:
                async with session.begin():
                    if await UserRepository(session).get_by_email(email):
                        print(f"  {email} already exists, skipping")
                        continue
                    user = await UserService(session).register(
                        UserCreate(
                            email=email,
                            password=DEMO_PASSWORD,
                            role=role,
                            full_name=full_name,
                            phone_number=phone,
                        )
                    )
                    created += 1
                    print(f"  Created {email} ({role.value}) id={user.id}")
    finally:
        await engine.dispose()

    print("-" * 60)
    print(f"Seeding complete: {created} user(s) created, password '{DEMO_PASSWORD}'")
    return created


if __name__ == "__main__":
    asyncio.run(seed_demo_users())
