from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.figure import Figure

DEFAULT_DPI = 150


def save_figure(path: Path, fig: Figure | None = None, dpi: int = DEFAULT_DPI) -> Path:
    figure = fig if fig is not None else plt.gcf()
    path.parent.mkdir(parents=True, exist_ok=True)
    figure.tight_layout()
    figure.savefig(path, dpi=dpi)
    plt.close(figure)
    return path
