"""
Plan catalog: plan id -> plan reference data.
"""

from typing import Dict, Optional

import structlog

from .records.schema import RATE_KEYS, Plan
from .store.base import RecordStore


logger = structlog.get_logger(__name__)


def _first_present(data: dict, keys) -> object:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


class PlanCatalog:
    """Read-only lookup of plans, loaded once per run."""

    def __init__(self, plans: Optional[Dict[str, Plan]] = None):
        self._plans: Dict[str, Plan] = dict(plans or {})

    def __len__(self) -> int:
        return len(self._plans)

    def get(self, plan_id: Optional[str]) -> Optional[Plan]:
        if plan_id is None:
            return None
        return self._plans.get(plan_id)

    @classmethod
    def from_documents(cls, documents) -> "PlanCatalog":
        """Build a catalog from ``(id, data)`` pairs."""
        plans = {}
        for plan_id, data in documents:
            if not isinstance(data, dict):
                logger.warning("Ignoring malformed plan document", plan_id=plan_id)
                continue
            is_active = data.get("isActive")
            if is_active is None:
                is_active = True
            if not isinstance(is_active, bool):
                logger.warning(
                    "Plan isActive is not a boolean, treating plan as inactive",
                    plan_id=plan_id,
                    value=repr(is_active)
                )
                is_active = False
            plans[plan_id] = Plan(
                plan_id=plan_id,
                name=data.get("name") or data.get("planName"),
                daily_rate=_first_present(data, RATE_KEYS),
                is_active=is_active,
            )
        return cls(plans)

    @classmethod
    async def load(cls, store: RecordStore, collection: str) -> "PlanCatalog":
        """Fetch every plan in ``collection``."""
        catalog = cls.from_documents(await store.fetch_all(collection))
        if not catalog:
            logger.error(
                "No investment plans found; only records with inline rates can be paid",
                collection=collection
            )
        else:
            logger.info("Loaded plan catalog", collection=collection, plans=len(catalog))
        return catalog
