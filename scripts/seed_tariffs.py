"""Seed script for a first tariff year.

Run with:
    python scripts/seed_tariffs.py 2025
    python scripts/seed_tariffs.py 2025 --create-schema

Creates the tables if asked, then stores the default parameters and the
template distance tiers for the year. Years that already have tiers are
left alone.
"""

from __future__ import annotations

import argparse
import asyncio

from fleet_payroll.database import create_schema, get_session, init_db
from fleet_payroll.repositories.sql import SqlAlchemyPayrollRepository
from fleet_payroll.services.tariff_import import TEMPLATE_ROWS
from fleet_payroll.services.tariff_store import TariffStore


async def seed_year(store: TariffStore, year: int) -> None:
    """Store default parameters and template tiers for the year."""
    if await store.repository.get_config(year) is None:
        await store.update_config(year)
        print(f"Created tariff configuration for {year}")

    if await store.get_tiers(year):
        print(f"{year} already has tiers, skipping")
        return

    entries = await store.replace_tiers(year, TEMPLATE_ROWS)
    print(f"Created {len(entries)} distance tiers for {year}")


async def main(year: int, with_schema: bool) -> None:
    """Run seed script."""
    if with_schema:
        engine, _ = init_db()
        await create_schema(engine)
        print("Schema created")

    print(f"Seeding tariffs for {year}...")
    async with get_session() as session:
        await seed_year(TariffStore(SqlAlchemyPayrollRepository(session)), year)

    print("\nDone! Tariffs seeded successfully.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed tariffs for a year")
    parser.add_argument("year", type=int)
    parser.add_argument("--create-schema", action="store_true", help="Create tables first")
    args = parser.parse_args()
    asyncio.run(main(args.year, args.create_schema))
