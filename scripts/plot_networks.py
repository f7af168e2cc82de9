"""
scripts/plot_networks.py

Draw the connected subgraph around a node of interest (usually a network's
earliest case) and save one figure per network.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List

import igraph as ig
import matplotlib.pyplot as plt
import networkx as nx
import seaborn as sns

from contact_records import CASE_ID_RE, is_case_id
from utils import ensure_dirs, save_figure

logger = logging.getLogger(__name__)


def network_subgraph(graph: ig.Graph, node_of_interest: str) -> nx.MultiGraph:
    """The connected component containing `node_of_interest`, as a networkx multigraph."""
    try:
        vertex = graph.vs.find(name=node_of_interest)
    except (ValueError, KeyError) as e:
        raise ValueError(f"Node not in contact graph: {node_of_interest}") from e

    sub = graph.induced_subgraph(graph.subcomponent(vertex.index))
    names = sub.vs["name"]

    G = nx.MultiGraph()
    G.add_nodes_from(names)
    G.add_edges_from((names[e.source], names[e.target]) for e in sub.es)
    return G


def plot_network(
    graph: ig.Graph,
    node_of_interest: str,
    case_pattern: re.Pattern = CASE_ID_RE,
    title: str = "",
    seed: int = 42,
) -> plt.Figure:
    G = network_subgraph(graph, node_of_interest)

    # collapse parallel edges for drawing
    simple = nx.Graph(G)

    palette = sns.color_palette("deep")
    colours = []
    for node in simple.nodes:
        if node == node_of_interest:
            colours.append(palette[3])
        elif is_case_id(node, case_pattern):
            colours.append(palette[1])
        else:
            colours.append(palette[0])

    pos = nx.spring_layout(simple, seed=seed)

    size = max(4.0, min(12.0, 2.0 + 0.15 * simple.number_of_nodes()))
    fig, ax = plt.subplots(figsize=(size, size))
    nx.draw_networkx_edges(simple, pos, ax=ax, alpha=0.5, width=0.8)
    nx.draw_networkx_nodes(simple, pos, ax=ax, node_color=colours, node_size=180)
    nx.draw_networkx_labels(simple, pos, ax=ax, font_size=7)
    ax.set_title(title or f"Network of {node_of_interest} ({simple.number_of_nodes()} people)")
    ax.set_axis_off()
    fig.tight_layout()
    return fig


def plot_networks(
    graph: ig.Graph,
    earliest_cases: Iterable[str],
    out_dir: Path,
    formats: List[str],
    date_label: str,
    case_pattern: re.Pattern = CASE_ID_RE,
) -> List[Path]:
    """Save one figure per earliest case; returns the written paths."""
    ensure_dirs(out_dir)
    saved = []
    for case in earliest_cases:
        fig = plot_network(graph, case, case_pattern=case_pattern)
        saved.extend(save_figure(fig, out_dir / f"network_{case}_{date_label}", formats))
        plt.close(fig)
    logger.info("Saved %d network figures to %s", len(saved), out_dir)
    return saved
