from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import matplotlib.pyplot as plt
import seaborn as sns
import yaml


def load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def deep_get(d: Dict[str, Any], keys: List[str], default: Any = None) -> Any:
    cur: Any = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def ensure_dirs(*dirs: Path) -> None:
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)


def save_figure(fig: plt.Figure, out_base: Path, formats: List[str]) -> List[Path]:
    saved = []
    for ext in formats:
        out_path = out_base.parent / f"{out_base.name}.{ext}"
        fig.savefig(out_path, bbox_inches="tight", dpi=300)
        saved.append(out_path)
    return saved


def set_seaborn_paper_context(font_scale=1.2) -> None:
    sns.set_theme(
        context="paper",
        style="white",
        font="sans-serif",
        font_scale=font_scale,
        rc={
            "axes.spines.right": False,
            "axes.spines.top": False,
            "axes.linewidth": 0.8,
        }
    )


def configure_logging(level: int = logging.INFO) -> None:
    """Attach a console handler to the root logger unless one is already there."""
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root.addHandler(handler)
    root.setLevel(level)
