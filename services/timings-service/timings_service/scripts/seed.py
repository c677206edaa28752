import argparse
import asyncio
from datetime import timedelta

from sqlalchemy import func, select

from .. import models  # noqa: F401  registers every table on Base.metadata
from ..config import get_settings
from ..database import Base, build_database
from ..models.timings import Category, GoodTiming, TimeSlot
from ..models.users import UserRole
from ..schemas.common import parse_clock
from ..services import users_service

DEFAULT_USERS: list[dict[str, str | UserRole]] = [
    {"email": "admin@dvs.com", "password": "admin123", "name": "DVS Admin", "role": UserRole.ADMIN},
    {"email": "user@dvs.com", "password": "user123", "name": "DVS User", "role": UserRole.USER},
]

DEFAULT_CATEGORIES: list[tuple[str, str]] = [
    ("Work", "blue"),
    ("Personal", "green"),
    ("Health", "teal"),
    ("Finance", "amber"),
]

SAMPLE_SLOTS: list[tuple[str, str, str, str]] = [
    ("06:00", "07:30", "Health", "Morning walk and meditation"),
    ("09:30", "11:00", "Work", "Deep work block"),
    ("16:00", "17:00", "Finance", "Review accounts"),
]


async def seed(*, with_sample_timing: bool = True) -> None:
    """Create the default accounts and categories; existing rows are left as they are."""
    settings = get_settings()
    database = build_database(settings)
    await database.create_all(Base.metadata)

    try:
        async with database.session() as db:
            users_created = 0
            admin = None
            for account in DEFAULT_USERS:
                user = await users_service.get_user_by_email(db, str(account["email"]))
                if user is None:
                    user = await users_service.create_user(
                        db,
                        email=str(account["email"]),
                        password=str(account["password"]),
                        name=str(account["name"]),
                        role=UserRole(account["role"]),
                        settings=settings,
                    )
                    users_created += 1
                if user.is_admin:
                    admin = user

            categories: dict[str, Category] = {}
            categories_created = 0
            for name, color in DEFAULT_CATEGORIES:
                res = await db.execute(select(Category).where(func.lower(Category.name) == name.lower()))
                category = res.scalar_one_or_none()
                if category is None:
                    category = Category(name=name, color_token=color, is_active=True)
                    db.add(category)
                    categories_created += 1
                categories[name] = category
            await db.flush()

            timing_created = False
            if with_sample_timing:
                today = settings.local_today()
                existing = await db.execute(select(GoodTiming.id).limit(1))
                if existing.first() is None:
                    timing = GoodTiming(
                        day=today.strftime("%A"),
                        start_date=today,
                        end_date=today + timedelta(days=6),
                        created_by=admin.id if admin is not None else None,
                    )
                    db.add(timing)
                    await db.flush()
                    for start, end, category_name, description in SAMPLE_SLOTS:
                        db.add(
                            TimeSlot(
                                parent_id=timing.id,
                                start_time=parse_clock(start, "Start time"),
                                end_time=parse_clock(end, "End time"),
                                category_id=categories[category_name].id,
                                description=description,
                            )
                        )
                    timing_created = True

            await db.commit()
            print(
                f"Seeding finished: users_created={users_created}, "
                f"categories_created={categories_created}, sample_timing_created={timing_created}"
            )
    finally:
        await database.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed default accounts, categories and a sample good timing")
    parser.add_argument(
        "--no-sample-timing",
        action="store_true",
        help="Only create accounts and categories",
    )
    args = parser.parse_args()

    asyncio.run(seed(with_sample_timing=not args.no_sample_timing))


if __name__ == "__main__":
    main()
