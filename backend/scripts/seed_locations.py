"""
Seed the fixed compartment grid (5 corridors x rows A-C x 10 columns) plus the
required addresses.

Run:
- inside backend/: `python scripts/seed_locations.py`
- from repo root: `python backend/scripts/seed_locations.py`
"""
import asyncio
import sys
from pathlib import Path

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core.config import settings  # noqa: E402
from core.logging import setup_logging  # noqa: E402
from db.database import async_session_maker, create_db_and_tables  # noqa: E402
from db.migrations import seed_location_grid, seed_required_locations  # noqa: E402


async def main() -> None:
    setup_logging(settings.log_level)
    await create_db_and_tables()
    async with async_session_maker() as db:
        created = await seed_location_grid(db)
        await seed_required_locations(db)
    print(f"Done. Locations inserted: {created}.")


if __name__ == "__main__":
    asyncio.run(main())
