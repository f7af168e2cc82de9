#!/usr/bin/env python3
"""
scripts/01_track_networks.py

Daily transmission-network report from a contact-tracing export.

What this script does
---------------------
1) Load contact records (case, contact, date, contact_type) from CSV/Parquet.
2) Build today's contact networks and yesterday's (most recent day removed).
3) Match networks across the two snapshots by earliest case and measure growth.
4) Save the case summary and network summary tables, named by the most
   recent record date.
5) Optionally save one network figure per earliest case.

Config
------
config/paths.yaml:
  data: {raw: {contacts: "data/raw/contacts.csv"}}
  outputs:
    tables: {networks: "tables/networks"}
    figures: {networks: "figures/networks"}
config/networks.yaml:
  input:
    columns: {case: "case", contact: "contact", date: "date", contact_type: "contact_type"}
    dayfirst: false
  cases: {id_pattern: "CS\\d+"}
  plots: {enabled: true, max_networks: 20, formats: ["png"]}
"""
from __future__ import annotations

import argparse
import re
from dataclasses import dataclass, field

import matplotlib.pyplot as plt

from contact_records import compile_case_pattern, load_contact_records
from network_summary import build_summary_tables, write_summary_tables
from plot_networks import plot_networks
from utils import *


@dataclass
class NetworksConfig:
    columns: Dict[str, str]
    dayfirst: bool
    case_pattern: re.Pattern
    plots_enabled: bool
    max_plots: int
    save_formats: List[str] = field(default_factory=lambda: ["png"])


@dataclass
class PathsConfig:
    contacts_file: Path
    tables_out_dir: Path
    figures_out_dir: Path


def parse_configs(paths_yaml: Path, networks_yaml: Path) -> tuple[PathsConfig, NetworksConfig]:
    paths_cfg = load_yaml(paths_yaml)
    net_cfg = load_yaml(networks_yaml)

    paths = PathsConfig(
        contacts_file=Path(deep_get(paths_cfg, ["data", "raw", "contacts"], "../data/raw/contacts.csv")),
        tables_out_dir=Path(deep_get(paths_cfg, ["outputs", "tables", "networks"], "../tables/networks")),
        figures_out_dir=Path(deep_get(paths_cfg, ["outputs", "figures", "networks"], "../figures/networks")),
    )

    networks = NetworksConfig(
        columns=dict(deep_get(net_cfg, ["input", "columns"], {})),
        dayfirst=bool(deep_get(net_cfg, ["input", "dayfirst"], False)),
        case_pattern=compile_case_pattern(deep_get(net_cfg, ["cases", "id_pattern"], None)),
        plots_enabled=bool(deep_get(net_cfg, ["plots", "enabled"], True)),
        max_plots=int(deep_get(net_cfg, ["plots", "max_networks"], 20)),
        save_formats=list(deep_get(net_cfg, ["plots", "formats"], ["png"])),
    )
    return paths, networks


def main() -> None:
    parser = argparse.ArgumentParser(description="Track growth of contact-tracing transmission networks.")
    parser.add_argument("--paths", type=str, default="../config/paths.yaml", help="Path to config/paths.yaml")
    parser.add_argument("--networks", type=str, default="../config/networks.yaml",
                        help="Path to config/networks.yaml")
    parser.add_argument("--contacts", type=str, default="", help="Override the contact records file.")
    parser.add_argument("--no-plots", action="store_true", help="Skip the per-network figures.")
    args = parser.parse_args()

    configure_logging()

    paths, net_cfg = parse_configs(Path(args.paths), Path(args.networks))
    if args.contacts:
        paths.contacts_file = Path(args.contacts)
    ensure_dirs(paths.tables_out_dir)

    records = load_contact_records(
        paths.contacts_file,
        columns=net_cfg.columns,
        dayfirst=net_cfg.dayfirst,
        case_pattern=net_cfg.case_pattern,
    )
    print(f"Loaded {len(records):,} contact records from {paths.contacts_file}.")

    case_summary, networks_summary, diff = build_summary_tables(records, net_cfg.case_pattern)
    latest = diff.most_recent_date.strftime("%Y-%m-%d")
    print(
        f"{latest}: {len(diff.current.networks):,} networks today "
        f"({len(networks_summary):,} with an earliest case), "
        f"{len(diff.previous.networks):,} yesterday."
    )

    case_path, networks_path = write_summary_tables(
        case_summary, networks_summary, paths.tables_out_dir, diff.most_recent_date
    )
    print(f"Saved case summary to: {case_path}")
    print(f"Saved networks summary to: {networks_path}")

    if net_cfg.plots_enabled and not args.no_plots:
        set_seaborn_paper_context()
        to_plot = networks_summary["earliest_case"].head(net_cfg.max_plots).tolist()
        saved = plot_networks(
            diff.current.graph,
            to_plot,
            paths.figures_out_dir,
            net_cfg.save_formats,
            date_label=latest,
            case_pattern=net_cfg.case_pattern,
        )
        plt.close("all")
        print(f"Saved {len(saved):,} network figures to: {paths.figures_out_dir}")

    print("Done.")


if __name__ == "__main__":
    main()
