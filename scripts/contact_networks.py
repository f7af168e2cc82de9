"""
scripts/contact_networks.py

Group contact records into transmission networks.

Pipeline
--------
1) Build an undirected contact multigraph (one edge per record).
2) Split it into connected components; each component is a network with a
   run-local integer id.
3) Pick a canonical "earliest case" per network:
   - only members matching the case-identifier pattern are candidates
   - each candidate is dated by its most recent record as case_id
   - the earliest such date wins; ties go to the greatest identifier

Network ids are arena indices for a single run. Anything that links networks
across snapshots or runs must go through `earliest_case`.
"""
from __future__ import annotations

import logging
import re
import warnings
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import igraph as ig
import pandas as pd

from contact_records import CASE_ID_RE, is_case_id

logger = logging.getLogger(__name__)

MEMBERSHIP_COLUMNS = ["node_id", "network_id", "earliest_case", "earliest_case_date"]


@dataclass(frozen=True)
class Network:
    network_id: int
    members: frozenset[str]
    earliest_case: Optional[str]
    earliest_case_date: Optional[pd.Timestamp]

    @property
    def size(self) -> int:
        return len(self.members)


@dataclass
class NetworkPartition:
    graph: ig.Graph
    networks: List[Network] = field(default_factory=list)

    def node_ids(self) -> set[str]:
        return set(self.graph.vs["name"]) if self.graph.vcount() else set()

    def by_earliest_case(self) -> Dict[str, Network]:
        return {n.earliest_case: n for n in self.networks if n.earliest_case is not None}

    def network_of(self, node_id: str) -> Optional[Network]:
        for net in self.networks:
            if node_id in net.members:
                return net
        return None

    def membership(self) -> pd.DataFrame:
        """One row per node: node_id, network_id, earliest_case, earliest_case_date."""
        rows = [
            (node, net.network_id, net.earliest_case, net.earliest_case_date)
            for net in self.networks
            for node in sorted(net.members)
        ]
        df = pd.DataFrame(rows, columns=MEMBERSHIP_COLUMNS)
        df["network_id"] = df["network_id"].astype(int)
        df["earliest_case"] = df["earliest_case"].astype("string")
        df["earliest_case_date"] = pd.to_datetime(df["earliest_case_date"])
        return df


def build_contact_graph(records: pd.DataFrame) -> ig.Graph:
    """
    Undirected multigraph over every identifier seen as case_id or contact_id.
    Parallel edges are kept; they do not change connectivity.
    """
    edges = list(zip(records["case_id"].tolist(), records["contact_id"].tolist()))
    return ig.Graph.TupleList(edges=edges, directed=False, vertex_name_attr="name")


def connected_networks(graph: ig.Graph) -> List[frozenset[str]]:
    """
    Connected components as sets of node identifiers. Component order follows
    the vertex order, i.e. first appearance in the record set.
    """
    if graph.vcount() == 0:
        return []
    names = graph.vs["name"]
    return [frozenset(names[v] for v in comp) for comp in graph.connected_components()]


def case_dates(records: pd.DataFrame) -> pd.Series:
    """Most recent record date per case_id (the case's summary date)."""
    return records.groupby("case_id")["date"].max()


def resolve_earliest_case(
    members: Iterable[str],
    dates: pd.Series,
    case_pattern: re.Pattern = CASE_ID_RE,
) -> Tuple[Optional[str], Optional[pd.Timestamp]]:
    """
    Canonical earliest case of a network, with its summary date.

    Returns (None, None) when no member matches the case pattern. Candidates
    without a summary date sit out the comparison; if none has one the
    greatest identifier is returned without a date.
    """
    cases = sorted(m for m in members if is_case_id(m, case_pattern))
    if not cases:
        return None, None

    if len(cases) == 1:
        only = cases[0]
        return only, dates.get(only)

    dated = [(dates[c], c) for c in cases if c in dates.index and not pd.isna(dates[c])]
    if not dated:
        warnings.warn(
            f"No summary date for any of {len(cases)} cases in network containing {cases[-1]}; "
            "earliest case date left empty.",
            RuntimeWarning,
        )
        return cases[-1], None

    first_date = min(d for d, _ in dated)
    earliest = max(c for d, c in dated if d == first_date)
    return earliest, first_date


def partition_records(records: pd.DataFrame, case_pattern: re.Pattern = CASE_ID_RE) -> NetworkPartition:
    """Build the contact graph, split it into networks and resolve each earliest case."""
    graph = build_contact_graph(records)
    dates = case_dates(records)

    networks = []
    for network_id, members in enumerate(connected_networks(graph)):
        earliest, earliest_date = resolve_earliest_case(members, dates, case_pattern)
        networks.append(Network(
            network_id=network_id,
            members=members,
            earliest_case=earliest,
            earliest_case_date=earliest_date,
        ))

    n_empty = sum(1 for n in networks if n.earliest_case is None)
    logger.info(
        "Partitioned %d nodes into %d networks (%d without a case)",
        graph.vcount(), len(networks), n_empty,
    )
    return NetworkPartition(graph=graph, networks=networks)
