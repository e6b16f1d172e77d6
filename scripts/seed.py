# scripts/seed.py

import os
import sys
import argparse

from dotenv import load_dotenv
from sqlmodel import Session, select

# Ensure root path for relative imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# ✅ Load environment variables
load_dotenv()

from core.database import create_db_and_tables, engine  # noqa: E402
from core.security import hash_password  # noqa: E402
from core.timeutils import utcnow  # noqa: E402
from models.models import Contact, ContactPhase, ContactType, User  # noqa: E402

DUMMY_B2C_CONTACTS = [
    ("John Smith", "john.smith@email.com", "+1-555-0101", "New York", "NY", "10001"),
    ("Sarah Johnson", "sarah.j@email.com", "+1-555-0102", "Los Angeles", "CA", "90001"),
    ("Michael Brown", "m.brown@email.com", "+1-555-0103", "Chicago", "IL", "60601"),
    ("Emily Davis", "emily.davis@email.com", "+1-555-0104", "Houston", "TX", "77001"),
    ("David Wilson", "david.w@email.com", "+1-555-0105", "Phoenix", "AZ", "85001"),
    ("Jessica Martinez", "j.martinez@email.com", "+1-555-0106", "Philadelphia", "PA", "19101"),
    ("Robert Taylor", "robert.t@email.com", "+1-555-0107", "San Antonio", "TX", "78201"),
    ("Amanda Anderson", "amanda.a@email.com", "+1-555-0108", "San Diego", "CA", "92101"),
    ("James Thomas", "james.t@email.com", "+1-555-0109", "Dallas", "TX", "75201"),
    ("Lisa Jackson", "lisa.j@email.com", "+1-555-0110", "San Jose", "CA", "95101"),
    ("Christopher White", "chris.w@email.com", "+1-555-0111", "Austin", "TX", "78701"),
    ("Michelle Harris", "michelle.h@email.com", "+1-555-0112", "Jacksonville", "FL", "32201"),
    ("Daniel Martin", "daniel.m@email.com", "+1-555-0113", "Fort Worth", "TX", "76101"),
    ("Jennifer Thompson", "jennifer.t@email.com", "+1-555-0114", "Columbus", "OH", "43201"),
    ("Matthew Garcia", "matthew.g@email.com", "+1-555-0115", "Charlotte", "NC", "28201"),
    ("Ashley Rodriguez", "ashley.r@email.com", "+1-555-0116", "San Francisco", "CA", "94101"),
    ("Andrew Lewis", "andrew.l@email.com", "+1-555-0117", "Indianapolis", "IN", "46201"),
    ("Melissa Walker", "melissa.w@email.com", "+1-555-0118", "Seattle", "WA", "98101"),
    ("Joseph Hall", "joseph.h@email.com", "+1-555-0119", "Denver", "CO", "80201"),
    ("Nicole Allen", "nicole.a@email.com", "+1-555-0120", "Boston", "MA", "02101"),
]


def seed_b2c_contacts(session: Session) -> int:
    """Insert the demo B2C leads in RAW unless some RAW B2C contact already exists."""
    existing = session.exec(
        select(Contact).where(Contact.type == ContactType.B2C, Contact.phase == ContactPhase.RAW)
    ).first()
    if existing:
        print("ℹ️ B2C contacts already seeded, skipping")
        return 0

    now = utcnow()
    for name, email, phone, city, state, zip_code in DUMMY_B2C_CONTACTS:
        session.add(Contact(
            type=ContactType.B2C,
            phase=ContactPhase.RAW,
            name=name,
            email=email,
            phone=phone,
            city=city,
            state=state,
            zip_code=zip_code,
            country="USA",
            source="dummy_data",
            created_at=now,
            updated_at=now,
        ))
    session.commit()
    print(f"✅ Seeded {len(DUMMY_B2C_CONTACTS)} B2C contacts")
    return len(DUMMY_B2C_CONTACTS)


def seed_demo_user(session: Session) -> None:
    email = "demo@leadvault.dev"
    if session.exec(select(User).where(User.email == email)).first():
        return

    session.add(User(name="Demo User", email=email, password_hash=hash_password("demo12345")))
    session.commit()
    print(f"✅ Added demo user {email}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the LeadVault database.")
    parser.add_argument(
        "--with-demo-user",
        action="store_true",
        help="Also create a demo login (dev only)",
    )
    args = parser.parse_args()

    print("🌱 Seeding data...")
    create_db_and_tables()
    with Session(engine) as session:
        seed_b2c_contacts(session)
        if args.with_demo_user:
            seed_demo_user(session)
    print("🌱 Seeding complete.")
