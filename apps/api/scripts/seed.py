"""
Seed script for the catering ops development database.

Creates one user per role, a sample production schedule for the current week,
the #general chat channel and the core quality form fields, so the screens
have something to show locally.

Usage:
    cd apps/api
    python scripts/seed.py
"""
from datetime import date, timedelta

from catering_ops.core import roles
from catering_ops.core.security import hash_password
from catering_ops.db.session import SessionLocal
from catering_ops.models.chat import ChatChannel, default_chat_rows
from catering_ops.models.production import ProductionSchedule
from catering_ops.models.quality import QualityFieldConfig
from catering_ops.models.user import User
from catering_ops.services.quality_fields import core_field_rows

DEFAULT_PASSWORD = "password123"

SEED_USERS = [
    ("admin@catering-ops.com", "Amal", "Haddad", roles.ADMIN, None, []),
    ("ops@catering-ops.com", "Omar", "Khalil", roles.OPERATIONS_LEAD, None, []),
    ("chef@catering-ops.com", "Rania", "Saleh", roles.HEAD_CHEF, None, []),
    ("hotline@catering-ops.com", "Yusuf", "Nasser", roles.STATION_STAFF, "Hot Line", []),
    ("dispatch@catering-ops.com", "Lina", "Farah", roles.DISPATCHER, None, []),
    ("manager@catering-ops.com", "Karim", "Aziz", roles.BRANCH_MANAGER, None, ["marina"]),
    ("regional@catering-ops.com", "Hana", "Mansour", roles.REGIONAL_MANAGER, None, []),
    ("ck@catering-ops.com", "Sami", "Jaber", roles.CENTRAL_KITCHEN, None, []),
]

SAMPLE_ITEMS = [
    ("Chicken Biryani", 40, "kg"),
    ("Dal Makhani", 25, "kg"),
    ("Greek Salad", 60, "portion"),
]


def sample_schedule(week_start: date) -> dict:
    days = []
    for offset in range(7):
        day = week_start + timedelta(days=offset)
        items = [
            {
                "item_id": f"{day.isoformat()}-{index}",
                "recipe_name": name,
                "quantity": quantity,
                "unit": unit,
                "completed": False,
            }
            for index, (name, quantity, unit) in enumerate(SAMPLE_ITEMS, start=1)
        ]
        days.append({"date": day.isoformat(), "day_name": day.strftime("%A"), "items": items})

    return {
        "schedule_id": f"schedule-{week_start.isoformat()}",
        "week_start": week_start.isoformat(),
        "week_end": (week_start + timedelta(days=6)).isoformat(),
        "days": days,
    }


def seed_database():
    """Seed the database with test data."""
    session = SessionLocal()

    try:
        # Check if data already exists
        if session.query(User).count() > 0:
            print("Database already seeded. Skipping...")
            return

        print("Seeding database...")

        for email, first_name, last_name, role, station, branches in SEED_USERS:
            session.add(User(
                email=email,
                hashed_password=hash_password(DEFAULT_PASSWORD),
                first_name=first_name,
                last_name=last_name,
                role=role,
                station_assignment=station,
                branch_slugs=branches,
            ))
        print(f"Created {len(SEED_USERS)} users")

        today = date.today()
        document = sample_schedule(today - timedelta(days=today.weekday()))
        session.add(ProductionSchedule(
            schedule_id=document["schedule_id"],
            week_start=document["week_start"],
            schedule_data=document,
        ))
        print(f"Created production schedule {document['schedule_id']}")

        # Present already when the schema came from migrations
        if session.query(ChatChannel).count() == 0:
            session.add_all(default_chat_rows())
            print("Created #general chat channel and quick replies")
        if session.query(QualityFieldConfig).count() == 0:
            session.add_all(core_field_rows())
            print("Created core quality form fields")

        session.commit()
        print("\nDatabase seeded successfully!")
        print("\nTest credentials (all users):")
        print(f"  Password: {DEFAULT_PASSWORD}")
        for email, *_ in SEED_USERS:
            print(f"  Email: {email}")

    except Exception as e:
        session.rollback()
        print(f"Error seeding database: {e}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    seed_database()
