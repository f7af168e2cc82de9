"""
scripts/snapshot_diff.py

Compare today's networks with yesterday's.

The "previous" snapshot is the record set with the most recent day removed
(records dated up to max(date) - 1 day). Both snapshots are partitioned
independently and networks are matched on equal `earliest_case` only.

Note
----
Matching by earliest case is literal: if yesterday's and today's partitions
resolve different earliest cases for what is really the same network (an
earlier case arrived in today's load, or the tie-break moved), the network
shows up as unmatched and its growth is missing rather than attributed.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import pandas as pd

from contact_networks import NetworkPartition, partition_records
from contact_records import CASE_ID_RE

logger = logging.getLogger(__name__)

GROWTH_COLUMNS = [
    "network_id",
    "earliest_case",
    "earliest_case_date",
    "people_today",
    "people_yesterday",
    "people_added_today",
]


@dataclass
class SnapshotDiff:
    current: NetworkPartition
    previous: NetworkPartition
    most_recent_date: pd.Timestamp
    growth: pd.DataFrame


def most_recent_date(records: pd.DataFrame) -> pd.Timestamp:
    if records.empty:
        raise ValueError("No contact records supplied; cannot determine the most recent date.")
    return records["date"].max()


def previous_day_records(records: pd.DataFrame) -> pd.DataFrame:
    """Records dated on or before the day before the most recent record."""
    cutoff = most_recent_date(records) - pd.Timedelta(days=1)
    return records.loc[records["date"] <= cutoff].reset_index(drop=True)


def network_growth(current: NetworkPartition, previous: NetworkPartition) -> pd.DataFrame:
    """
    Per-network growth for every current network with an earliest case.

    people_yesterday and people_added_today are missing (pd.NA) when the
    earliest case has no counterpart in the previous snapshot.
    """
    prev_sizes = {case: net.size for case, net in previous.by_earliest_case().items()}

    rows = []
    for case, net in current.by_earliest_case().items():
        rows.append({
            "network_id": net.network_id,
            "earliest_case": case,
            "earliest_case_date": net.earliest_case_date,
            "people_today": net.size,
            "people_yesterday": prev_sizes.get(case, pd.NA),
        })

    growth = pd.DataFrame(rows, columns=GROWTH_COLUMNS[:-1])
    growth["earliest_case"] = growth["earliest_case"].astype("string")
    growth["earliest_case_date"] = pd.to_datetime(growth["earliest_case_date"])
    growth["people_today"] = growth["people_today"].astype("Int64")
    growth["people_yesterday"] = growth["people_yesterday"].astype("Int64")
    growth["people_added_today"] = growth["people_today"] - growth["people_yesterday"]

    return (growth
            .sort_values(["people_added_today", "earliest_case"],
                         ascending=[False, True], na_position="last", kind="mergesort")
            .reset_index(drop=True))


def diff_snapshots(records: pd.DataFrame, case_pattern: re.Pattern = CASE_ID_RE) -> SnapshotDiff:
    """Partition the full and the previous-day record sets and align their networks."""
    latest = most_recent_date(records)
    previous_records = previous_day_records(records)
    logger.info(
        "Snapshots: %d records up to %s, %d records up to %s",
        len(records), latest.date(), len(previous_records), (latest - pd.Timedelta(days=1)).date(),
    )

    current = partition_records(records, case_pattern)
    previous = partition_records(previous_records, case_pattern)
    growth = network_growth(current, previous)

    n_unmatched = int(growth["people_yesterday"].isna().sum())
    if n_unmatched:
        logger.info("%d of %d networks have no earliest-case match in the previous snapshot",
                    n_unmatched, len(growth))

    return SnapshotDiff(current=current, previous=previous, most_recent_date=latest, growth=growth)
