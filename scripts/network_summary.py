"""
scripts/network_summary.py

Per-case and per-network summary tables for reporting.

Outputs
-------
case_summary_<date>.csv
  one row per node of today's contact graph: network membership, whether the
  node is new to its network since yesterday, and per-case contact counts
networks_summary_<date>.csv
  one row per network with an earliest case: size, growth, member list,
  case count and activity dates; recently active, case-heavy networks first
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Tuple

import pandas as pd

from contact_networks import NetworkPartition
from contact_records import CASE_ID_RE, ContactType, is_case_id
from snapshot_diff import SnapshotDiff, diff_snapshots

logger = logging.getLogger(__name__)

METRIC_COLUMNS = [
    "n_contacts",
    "n_contact_cases",
    "n_non_household_contact_cases",
    "n_household_contacts",
    "n_non_household_contacts",
]

CASE_SUMMARY_COLUMNS = [
    "node_id",
    "network_id",
    "earliest_case",
    "earliest_case_date",
    "earliest_case_previous",
    "new_to_network_today",
    "is_case",
    "case_date",
    *METRIC_COLUMNS,
]

NETWORKS_SUMMARY_COLUMNS = [
    "network_id",
    "earliest_case",
    "n_members",
    "n_new_to_network_today",
    "people_yesterday",
    "people_added_today",
    "n_cases",
    "date_earliest_case",
    "date_most_recent_case",
    "days_growing",
    "days_since_growth",
    "members",
]

MEMBER_SEPARATOR = "; "


def case_metrics(records: pd.DataFrame) -> pd.DataFrame:
    """
    Contact counts per case_id, counting distinct contact identifiers, plus
    the case's summary date (its most recent record).
    """
    household = records["contact_type"] == ContactType.HOUSEHOLD.value
    non_household = records["contact_type"] == ContactType.NON_HOUSEHOLD.value
    contact_is_case = records["contact_is_case"].astype(bool)

    def _distinct_contacts(mask: pd.Series) -> pd.Series:
        return records.loc[mask].groupby("case_id")["contact_id"].nunique()

    grouped = records.groupby("case_id")
    out = pd.DataFrame({
        "case_date": grouped["date"].max(),
        "n_contacts": grouped["contact_id"].nunique(),
    })
    out["n_contact_cases"] = _distinct_contacts(contact_is_case)
    out["n_non_household_contact_cases"] = _distinct_contacts(contact_is_case & non_household)
    out["n_household_contacts"] = _distinct_contacts(household)
    out["n_non_household_contacts"] = _distinct_contacts(non_household)

    out[METRIC_COLUMNS] = out[METRIC_COLUMNS].fillna(0).astype(int)
    out.index.name = "node_id"
    return out


def node_continuity(current: NetworkPartition, previous: NetworkPartition) -> pd.DataFrame:
    """
    Flag each current node that was not in yesterday's network with the same
    earliest case.

    earliest_case_previous is filled only when the node sat in a previous
    network keyed by the same earliest case. new_to_network_today is missing
    for networks without an earliest case.
    """
    cur = current.membership()[["node_id", "earliest_case"]]
    prev = previous.membership()[["node_id", "earliest_case"]].dropna(subset=["earliest_case"])
    prev = prev.assign(earliest_case_previous=prev["earliest_case"])

    merged = cur.merge(prev, on=["node_id", "earliest_case"], how="left")
    merged["new_to_network_today"] = (merged["earliest_case_previous"]
                                      .isna()
                                      .astype("boolean")
                                      .mask(merged["earliest_case"].isna()))
    return merged[["node_id", "earliest_case_previous", "new_to_network_today"]]


def summarise_cases(
    diff: SnapshotDiff,
    records: pd.DataFrame,
    case_pattern: re.Pattern = CASE_ID_RE,
) -> pd.DataFrame:
    membership = diff.current.membership()
    continuity = node_continuity(diff.current, diff.previous)

    df = membership.merge(continuity, on="node_id", how="left")
    df["is_case"] = df["node_id"].map(lambda n: is_case_id(n, case_pattern)).astype(bool)

    metrics = case_metrics(records)
    metrics = metrics.loc[[is_case_id(n, case_pattern) for n in metrics.index]]
    df = df.merge(metrics, left_on="node_id", right_index=True, how="left")
    df[METRIC_COLUMNS] = df[METRIC_COLUMNS].astype("Int64")

    return (df[CASE_SUMMARY_COLUMNS]
            .sort_values(["network_id", "node_id"])
            .reset_index(drop=True))


def summarise_networks(
    case_summary: pd.DataFrame,
    growth: pd.DataFrame,
    latest: pd.Timestamp,
) -> pd.DataFrame:
    """
    Aggregate the case summary per earliest case. Networks without an
    earliest case have nothing to key on and are left out.
    """
    keyed = case_summary.dropna(subset=["earliest_case"])
    if keyed.empty:
        return pd.DataFrame(columns=NETWORKS_SUMMARY_COLUMNS)

    summary = (keyed.groupby("earliest_case")
                    .agg(network_id=("network_id", "first"),
                         n_members=("node_id", "size"),
                         n_new_to_network_today=("new_to_network_today", "sum"),
                         n_cases=("is_case", "sum"),
                         date_earliest_case=("case_date", "min"),
                         date_most_recent_case=("case_date", "max"),
                         members=("node_id", lambda s: MEMBER_SEPARATOR.join(sorted(s))))
                    .reset_index())

    summary["n_new_to_network_today"] = summary["n_new_to_network_today"].astype(int)
    summary["n_cases"] = summary["n_cases"].astype(int)
    summary["days_growing"] = (
        (summary["date_most_recent_case"] - summary["date_earliest_case"]).dt.days.astype("Int64")
    )
    summary["days_since_growth"] = (latest - summary["date_most_recent_case"]).dt.days.astype("Int64")

    summary = summary.merge(
        growth[["earliest_case", "people_yesterday", "people_added_today"]],
        on="earliest_case",
        how="left",
    )

    return (summary[NETWORKS_SUMMARY_COLUMNS]
            .sort_values(["days_since_growth", "n_cases", "earliest_case"],
                         ascending=[True, False, True], na_position="last")
            .reset_index(drop=True))


def build_summary_tables(
    records: pd.DataFrame,
    case_pattern: re.Pattern = CASE_ID_RE,
) -> Tuple[pd.DataFrame, pd.DataFrame, SnapshotDiff]:
    """Run the full engine: snapshots, growth, case summary and network summary."""
    diff = diff_snapshots(records, case_pattern)
    case_summary = summarise_cases(diff, records, case_pattern)
    networks_summary = summarise_networks(case_summary, diff.growth, diff.most_recent_date)
    logger.info("Summarised %d nodes in %d reportable networks", len(case_summary), len(networks_summary))
    return case_summary, networks_summary, diff


def write_summary_tables(
    case_summary: pd.DataFrame,
    networks_summary: pd.DataFrame,
    out_dir: Path,
    latest: pd.Timestamp,
) -> Tuple[Path, Path]:
    """Write both tables as CSV, named by the run's most recent record date."""
    out_dir.mkdir(parents=True, exist_ok=True)
    stamp = pd.Timestamp(latest).strftime("%Y-%m-%d")

    case_path = out_dir / f"case_summary_{stamp}.csv"
    networks_path = out_dir / f"networks_summary_{stamp}.csv"
    case_summary.to_csv(case_path, index=False, date_format="%Y-%m-%d")
    networks_summary.to_csv(networks_path, index=False, date_format="%Y-%m-%d")
    return case_path, networks_path
