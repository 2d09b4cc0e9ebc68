import logging
from typing import Any, List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.location import Location, format_address
from db.migrations import REQUIRED_ADDRESSES, ensure_location, parse_address
from services.errors import LocationNotFound, storage_guard
from services.refs import ById, Ref, parse_ref

logger = logging.getLogger(__name__)


class LocationDirectory:
    """
    Maps human-facing location references to canonical location ids.

    Resolution order:
      1. purely numeric input -> direct id lookup
      2. case-insensitive exact match on the stored address
      3. parse `<corridor><row><col>` and match on the coordinates
         (covers rows whose address column was never populated)
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, value: Any) -> int:
        try:
            ref = parse_ref(value)
        except ValueError:
            raise LocationNotFound(
                "Location reference is empty",
                {"field": "location_ref", "value": value, "known_addresses": await self.known_addresses()},
            )

        async with storage_guard("location lookup"):
            loc_id = await self._lookup(ref)

        if loc_id is None:
            known = await self.known_addresses()
            logger.warning("Location %r not found (%d known)", ref.raw, len(known))
            raise LocationNotFound(
                f"Location not found: {ref.raw}",
                {"field": "location_ref", "value": ref.raw, "known_addresses": known},
            )
        return loc_id

    async def _lookup(self, ref: Ref):
        if isinstance(ref, ById):
            loc = await self.db.get(Location, ref.id)
            if loc is not None:
                return loc.id

        raw = ref.raw.strip()
        res = await self.db.execute(
            select(Location.id).where(func.upper(Location.address) == raw.upper())
        )
        loc_id = res.scalars().first()
        if loc_id is not None:
            return loc_id

        parsed = parse_address(raw)
        if parsed is None:
            return None
        corridor, row, col = parsed
        res = await self.db.execute(
            select(Location.id).where(
                Location.corridor == corridor,
                func.upper(Location.row) == row,
                Location.col == col,
            )
        )
        return res.scalars().first()

    async def recover(self, address: str) -> int:
        """
        Re-insert an allow-listed location and resolve it once.

        Only for the addresses in REQUIRED_ADDRESSES; everything else is refused
        with LocationNotFound. Not a general repair path.
        """
        parsed = parse_address(address)
        canonical = format_address(*parsed) if parsed else (address or "").strip()
        if canonical not in REQUIRED_ADDRESSES:
            raise LocationNotFound(
                f"Location {canonical!r} is not eligible for recovery",
                {"field": "address", "value": address, "recoverable": list(REQUIRED_ADDRESSES)},
            )

        async with storage_guard("location recovery"):
            await ensure_location(self.db, canonical)
            await self.db.commit()
        logger.info("Recovered location %s", canonical)
        return await self.resolve(canonical)

    async def list(self) -> List[Location]:
        async with storage_guard("location listing"):
            res = await self.db.execute(select(Location).order_by(Location.id.asc()))
            return list(res.scalars().all())

    async def known_addresses(self) -> List[str]:
        return [loc.display_address for loc in await self.list()]
