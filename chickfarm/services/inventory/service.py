from __future__ import annotations

import logging

from sqlalchemy import update

from chickfarm.core.errors import InsufficientResources, NotFound
from chickfarm.db.models import Account, ResourceBundle

log = logging.getLogger(__name__)

# public delta names -> columns
_FIELDS = {
    "water": "water_buckets",
    "wheat": "wheat_bags",
    "eggs": "eggs",
    "mystery_boxes": "mystery_boxes",
}


class InventoryService:
    async def get_or_create(self, session, account_id: int) -> ResourceBundle:
        bundle = await session.get(ResourceBundle, account_id)
        if bundle:
            return bundle
        if not await session.get(Account, account_id):
            raise NotFound(f"account {account_id} not found")
        bundle = ResourceBundle(account_id=account_id, water_buckets=0, wheat_bags=0, eggs=0, mystery_boxes=0)
        session.add(bundle)
        await session.flush()
        return bundle

    async def apply_delta(
        self,
        session,
        account_id: int,
        *,
        water: int = 0,
        wheat: int = 0,
        eggs: int = 0,
        mystery_boxes: int = 0,
    ) -> ResourceBundle:
        """Additive update of several counters at once.

        All touched counters must stay >= 0 or nothing is written.
        """
        deltas = {"water": water, "wheat": wheat, "eggs": eggs, "mystery_boxes": mystery_boxes}
        deltas = {k: int(v) for k, v in deltas.items() if v}

        bundle = await self.get_or_create(session, account_id)
        if not deltas:
            return bundle

        conds = [ResourceBundle.account_id == account_id]
        values = {}
        for name, delta in deltas.items():
            col = getattr(ResourceBundle, _FIELDS[name])
            values[_FIELDS[name]] = col + delta
            if delta < 0:
                conds.append(col + delta >= 0)

        stmt = (
            update(ResourceBundle)
            .where(*conds)
            .values(**values)
            .returning(ResourceBundle.account_id)
            .execution_options(synchronize_session="fetch")
        )
        if (await session.execute(stmt)).scalar_one_or_none() is None:
            await session.refresh(bundle)
            short = [
                name
                for name, delta in deltas.items()
                if getattr(bundle, _FIELDS[name]) + delta < 0
            ]
            log.info("inventory_delta_rejected account_id=%s short=%s", account_id, ",".join(short))
            raise InsufficientResources("not enough " + ", ".join(short or deltas))

        await session.refresh(bundle)
        return bundle


inventory_service = InventoryService()
