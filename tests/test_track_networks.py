"""
End-to-end tests for the 01_track_networks.py entry script.
"""

import importlib.util
import sys
from pathlib import Path

import pandas as pd
import pytest

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "01_track_networks.py"


@pytest.fixture
def track_networks(monkeypatch):
    spec = importlib.util.spec_from_file_location("track_networks", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    # dataclasses resolve string annotations through sys.modules
    monkeypatch.setitem(sys.modules, spec.name, module)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def workspace(tmp_path):
    contacts = tmp_path / "contacts.csv"
    contacts.write_text(
        "CaseNumber,ContactNumber,DateOfContact,ContactType\n"
        "CS1,P1,2020-10-01,Household\n"
        "CS1,P2,2020-10-01,Non-Resident\n"
        "CS1,P3,2020-10-02,Household\n"
        "P7,P8,2020-10-02,Work\n",
        encoding="utf-8",
    )

    paths_yaml = tmp_path / "paths.yaml"
    paths_yaml.write_text(
        "data:\n"
        f"  raw: {{contacts: '{contacts}'}}\n"
        "outputs:\n"
        f"  tables: {{networks: '{tmp_path / 'tables'}'}}\n"
        f"  figures: {{networks: '{tmp_path / 'figures'}'}}\n",
        encoding="utf-8",
    )

    networks_yaml = tmp_path / "networks.yaml"
    networks_yaml.write_text(
        "input:\n"
        "  columns: {case: CaseNumber, contact: ContactNumber, date: DateOfContact, contact_type: ContactType}\n"
        "cases:\n"
        "  id_pattern: 'CS\\d+'\n"
        "plots:\n"
        "  enabled: true\n"
        "  max_networks: 5\n"
        "  formats: [png]\n",
        encoding="utf-8",
    )
    return tmp_path, paths_yaml, networks_yaml


class TestParseConfigs:
    """Tests for config parsing."""

    def test_reads_both_files(self, track_networks, workspace):
        root, paths_yaml, networks_yaml = workspace
        paths, net_cfg = track_networks.parse_configs(paths_yaml, networks_yaml)

        assert paths.contacts_file == root / "contacts.csv"
        assert net_cfg.columns["case"] == "CaseNumber"
        assert net_cfg.case_pattern.fullmatch("CS12")
        assert net_cfg.max_plots == 5

    def test_defaults_for_empty_config(self, track_networks, tmp_path):
        empty = tmp_path / "empty.yaml"
        empty.write_text("", encoding="utf-8")

        paths, net_cfg = track_networks.parse_configs(empty, empty)

        assert paths.tables_out_dir == Path("../tables/networks")
        assert net_cfg.columns == {}
        assert net_cfg.plots_enabled
        assert net_cfg.save_formats == ["png"]

    def test_missing_config(self, track_networks, tmp_path):
        with pytest.raises(FileNotFoundError):
            track_networks.parse_configs(tmp_path / "nope.yaml", tmp_path / "nope.yaml")


class TestMain:
    """Tests for the full run."""

    def test_writes_tables_and_figures(self, track_networks, workspace, monkeypatch):
        root, paths_yaml, networks_yaml = workspace
        monkeypatch.setattr(sys, "argv", [
            "01_track_networks.py", "--paths", str(paths_yaml), "--networks", str(networks_yaml),
        ])

        track_networks.main()

        networks = pd.read_csv(root / "tables" / "networks_summary_2020-10-02.csv")
        cases = pd.read_csv(root / "tables" / "case_summary_2020-10-02.csv")
        assert networks["earliest_case"].tolist() == ["CS1"]
        assert networks.loc[0, "people_added_today"] == 1
        assert len(cases) == 6
        assert (root / "figures" / "network_CS1_2020-10-02.png").exists()

    def test_no_plots_flag(self, track_networks, workspace, monkeypatch):
        root, paths_yaml, networks_yaml = workspace
        monkeypatch.setattr(sys, "argv", [
            "01_track_networks.py", "--paths", str(paths_yaml), "--networks", str(networks_yaml), "--no-plots",
        ])

        track_networks.main()

        assert (root / "tables" / "networks_summary_2020-10-02.csv").exists()
        assert not (root / "figures").exists()
