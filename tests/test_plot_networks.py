"""
Tests for per-network figures.
"""

import re

import matplotlib.pyplot as plt
import pytest

from contact_networks import build_contact_graph
from plot_networks import network_subgraph, plot_network, plot_networks


@pytest.fixture
def graph(make_records, scenario_one):
    return build_contact_graph(make_records(scenario_one + [
        ("CS1", "P1", "2020-10-02", "Household"),
        ("CS2", "P9", "2020-10-02", "Household"),
    ]))


class TestNetworkSubgraph:
    """Tests for network_subgraph."""

    def test_only_connected_nodes(self, graph):
        sub = network_subgraph(graph, "P2")

        assert set(sub.nodes) == {"CS1", "P1", "P2"}
        assert sub.number_of_edges() == 3

    def test_unknown_node(self, graph):
        with pytest.raises(ValueError, match="not in contact graph"):
            network_subgraph(graph, "CS99")


class TestPlotNetworks:
    """Tests for rendering and saving figures."""

    def test_plot_network_returns_figure(self, graph):
        fig = plot_network(graph, "CS1")

        assert "CS1" in fig.axes[0].get_title()
        plt.close(fig)

    def test_saves_one_file_per_network(self, graph, tmp_path):
        saved = plot_networks(graph, ["CS1", "CS2"], tmp_path / "figs", ["png"], date_label="2020-10-02")

        assert [p.name for p in saved] == ["network_CS1_2020-10-02.png", "network_CS2_2020-10-02.png"]
        assert all(p.exists() for p in saved)

    def test_dotted_case_ids_keep_full_file_name(self, make_records, tmp_path):
        """A dot inside a case id must not be taken for a file extension."""
        graph = build_contact_graph(make_records([("C.1", "P1", "2020-10-02", "Household")]))

        saved = plot_networks(
            graph, ["C.1"], tmp_path, ["png", "pdf"], date_label="2020-10-02",
            case_pattern=re.compile(r"C\.\d+"),
        )

        assert [p.name for p in saved] == ["network_C.1_2020-10-02.png", "network_C.1_2020-10-02.pdf"]
        assert all(p.exists() for p in saved)
