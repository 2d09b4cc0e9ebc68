"""
Startup data migrations for the location table.

Compartments are a fixed set; a few addresses are load-bearing for the
dashboard and scanner flows and must always resolve. They are (re)inserted
here once at startup instead of being patched on lookup misses.
"""
import logging
import re
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .location import Location, format_address

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"^(\d+)([A-Za-z])(\d+)$")

# Addresses that must exist for the system to be usable.
REQUIRED_ADDRESSES = ("1A1", "3B7")

# The physical grid: 5 corridors x 3 rows x 10 columns.
GRID_CORRIDORS = range(1, 6)
GRID_ROWS = ("A", "B", "C")
GRID_COLUMNS = range(1, 11)


def parse_address(address: str) -> Optional[Tuple[int, str, int]]:
    """'3b7' -> (3, 'B', 7); None if the string is not an address."""
    m = ADDRESS_RE.match((address or "").strip())
    if not m:
        return None
    return int(m.group(1)), m.group(2).upper(), int(m.group(3))


async def ensure_location(db: AsyncSession, address: str) -> Location:
    """
    Make sure the canonical row for `address` exists with its address populated.

    Inserts it if missing; fills in the address on a coordinates-only row.
    Flushes but does not commit.
    """
    parsed = parse_address(address)
    if parsed is None:
        raise ValueError(f"not a location address: {address!r}")
    corridor, row, col = parsed
    canonical = format_address(corridor, row, col)

    res = await db.execute(
        select(Location).where(
            Location.corridor == corridor,
            func.upper(Location.row) == row,
            Location.col == col,
        )
    )
    loc = res.scalar_one_or_none()
    if loc is None:
        loc = Location(address=canonical, corridor=corridor, row=row, col=col)
        db.add(loc)
        logger.info("Inserted location %s", canonical)
    elif not loc.address:
        loc.address = canonical
        logger.info("Backfilled address for location %s (id=%s)", canonical, loc.id)
    await db.flush()
    return loc


async def seed_required_locations(db: AsyncSession) -> int:
    """Insert any missing allow-listed address. Returns how many rows were inserted."""
    before = await _count(db)
    for address in REQUIRED_ADDRESSES:
        await ensure_location(db, address)
    await db.commit()
    created = await _count(db) - before
    logger.info("Required locations checked (%d inserted)", created)
    return created


async def seed_location_grid(db: AsyncSession) -> int:
    """Idempotently insert the full corridor/row/column grid. Returns how many rows were inserted."""
    res = await db.execute(select(Location.corridor, func.upper(Location.row), Location.col))
    existing = {(c, r, k) for c, r, k in res.all()}

    created = 0
    for corridor in GRID_CORRIDORS:
        for row in GRID_ROWS:
            for col in GRID_COLUMNS:
                if (corridor, row, col) in existing:
                    continue
                db.add(Location(address=format_address(corridor, row, col), corridor=corridor, row=row, col=col))
                created += 1
    await db.commit()
    logger.info("Location grid seeded (%d inserted)", created)
    return created


async def _count(db: AsyncSession) -> int:
    res = await db.execute(select(func.count(Location.id)))
    return int(res.scalar_one())
