from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt

from .models import Classification, VariantType
from .stats import DiffStats

logger = logging.getLogger(__name__)


def plot_classification_counts(
    *,
    stats: DiffStats,
    out_png: str | Path,
    title: str = "Call concordance",
) -> None:
    """Stacked bar chart: one bar per classification, stacked by variant type."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    classes = list(Classification)
    labels = [c.value for c in classes]
    bottoms = [0] * len(classes)

    plt.figure()
    for vt in VariantType:
        heights = [int(stats.by_type.get((c, vt), 0)) for c in classes]
        if not any(heights):
            continue
        plt.bar(labels, heights, bottom=bottoms, label=vt.value)
        bottoms = [b + h for b, h in zip(bottoms, heights)]
    if stats.total == 0:
        plt.bar(labels, bottoms)
    else:
        plt.legend(fontsize="small")
    plt.ylabel("Positions")
    plt.title(title)
    plt.xticks(rotation=15, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
    logger.info("Plot written: %s", out_png)
