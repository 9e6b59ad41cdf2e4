"""
Top donor leaderboard.

The leaderboard is a materialized snapshot: ``recompute_leaderboard`` sums
every donation per donor, ranks the donors and replaces the stored
snapshot in one write. The snapshot lives in a single document of the
``topDonors`` collection, so a reader sees either the previous ranking or
the new one and never an empty list in between.

Ranking rules:

* donations without a ``userId`` are left out of the ranking;
* only real numbers count towards a total, anything else counts as 0;
* a total that would overflow is capped at the largest finite float;
* higher totals rank first, equal totals are ordered by ``userId``.
"""

import logging
import math
import sys
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from config import settings
from database import DONATIONS, TOP_DONORS, get_collection
from schemas import LeaderboardSnapshot, TopDonor

logger = logging.getLogger(__name__)

SNAPSHOT_ID = "current"


def donation_amount(value) -> float:
    """Amount a donation contributes to its donor's total."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return float(value)


def clamp_total(total: float) -> float:
    """Keep a running total inside the finite float range."""
    if math.isinf(total):
        return math.copysign(sys.float_info.max, total)
    return total


def rank_donors(donations: Iterable[dict], limit: int) -> List[Dict]:
    """Group donations by donor and return the top ``limit`` totals.

    Returns ``[{"userId": ..., "totalAmount": ...}, ...]`` ordered by total
    descending, then ``userId`` ascending.
    """
    if limit < 0:
        raise ValueError("limit must not be negative")

    totals: Dict[str, float] = defaultdict(float)
    for donation in donations:
        user_id = donation.get("userId")
        if user_id is None or user_id == "":
            continue
        key = str(user_id)
        totals[key] = clamp_total(totals[key] + donation_amount(donation.get("amount")))

    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [{"userId": user_id, "totalAmount": total} for user_id, total in ranked[:limit]]


def recompute_leaderboard(limit: Optional[int] = None) -> List[Dict]:
    """Rebuild the top donor snapshot from the donations collection.

    The new snapshot replaces the stored one in a single ``replace_one``
    and the ranked entries are returned. A store failure leaves the
    previous snapshot in place.
    """
    if limit is None:
        limit = settings.leaderboard_limit

    donations = get_collection(DONATIONS).find({}, {"userId": 1, "amount": 1, "_id": 0})
    computed_at = datetime.now(timezone.utc)
    entries = [
        TopDonor(timestamp=computed_at, **ranked)
        for ranked in rank_donors(donations, limit)
    ]
    snapshot = LeaderboardSnapshot(entries=entries, computed_at=computed_at)

    get_collection(TOP_DONORS).replace_one(
        {"_id": SNAPSHOT_ID},
        snapshot.model_dump(by_alias=True),
        upsert=True,
    )
    logger.info("Leaderboard recomputed with %d entries", len(entries))
    return [entry.model_dump(by_alias=True) for entry in entries]


def fetch_leaderboard() -> List[Dict]:
    """Return the stored snapshot entries without recomputing."""
    snapshot = get_collection(TOP_DONORS).find_one({"_id": SNAPSHOT_ID})
    if not snapshot:
        return []
    return snapshot.get("entries", [])


def add_top_donor(user_id: str, total_amount: float) -> Dict:
    """Append a manually supplied entry to the current snapshot.

    The entry is dropped by the next ``recompute_leaderboard``.
    """
    entry = TopDonor(user_id=user_id, total_amount=total_amount, timestamp=datetime.now(timezone.utc))
    doc = entry.model_dump(by_alias=True)
    get_collection(TOP_DONORS).update_one(
        {"_id": SNAPSHOT_ID},
        {"$push": {"entries": doc}, "$setOnInsert": {"computedAt": doc["timestamp"]}},
        upsert=True,
    )
    return doc
