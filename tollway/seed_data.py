"""
Database seeding script for development.

Creates an admin, a gate operator, a driver with a funded wallet and a
tagged vehicle, and one toll gate.

    python -m tollway.seed_data
"""

import asyncio
from decimal import Decimal

from sqlalchemy import select

from tollway.app.db.session import AsyncSessionLocal, engine, Base
from tollway.app.domain.ledger.ledger_service import LedgerService
from tollway.app.models.account import Account
from tollway.app.models.enums import CapacityClass, UserRole, VehicleType
from tollway.app.models.toll_gate import TollGate
from tollway.app.models.user import User
from tollway.app.models.vehicle import Vehicle
import tollway.app.main  # noqa: F401  registers every model on Base


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting seeding...")

        result = await db.execute(select(User).where(User.email == "admin@tollway.local"))
        if result.scalar_one_or_none():
            print("ℹ️  Seed data already present, skipping")
            return

        db.add_all([
            User(name="Admin", email="admin@tollway.local", role=UserRole.ADMIN),
            User(name="Gate Operator", email="staff@tollway.local", role=UserRole.STAFF),
        ])

        driver = User(name="Demo Driver", email="driver@tollway.local", role=UserRole.DRIVER)
        db.add(driver)
        await db.flush()

        account = Account(user_id=driver.id)
        db.add(account)
        await db.flush()

        db.add(Vehicle(
            account_id=account.id,
            registration_number="ABC1234",
            make="Toyota",
            model="Hilux",
            vehicle_type=VehicleType.TRUCK,
            capacity_class=CapacityClass.MEDIUM,
            rfid_tag="ABC123XYZ",
        ))

        db.add(TollGate(
            name="North Plaza Gate 1",
            location="North Expressway KM 12",
            gate_identifier="GATE-001",
            base_toll_rate=Decimal("500.00"),
            overweight_fine_rate=Decimal("1000.00"),
            weight_limit_kg=Decimal("5000.00"),
        ))

        await LedgerService.credit(db, account.id, Decimal("10000.00"), "Opening balance", reference="SEED-OPENING")
        await db.commit()

        print("✅ Created admin@tollway.local, staff@tollway.local, driver@tollway.local")
        print("✅ Created GATE-001 and vehicle ABC1234 (tag ABC123XYZ) with 10000.00 balance")


if __name__ == "__main__":
    asyncio.run(seed())
