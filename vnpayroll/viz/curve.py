from decimal import Decimal
from typing import Iterable, Tuple, Optional, Dict, Any
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


def plot_curve(
    points: Iterable[Tuple[int, Decimal, Decimal]],
    out_path: str,
    annotations: Optional[Dict[str, Any]] = None,
):
    """
    points: iterable of (gross:int, net:Decimal, pit:Decimal)
    annotations (optional):
      {
        "bracket_edges": list[int],   # gross values where a new PIT bracket starts
        "marker_gross": float|int,    # highlight one gross value
        "marker_net": float|int,
        "label": str,                 # text near the marker
        "title": str,
      }
    """
    points = list(points)
    xs = [float(g) / 1e6 for g, _, _ in points]
    nets = [float(n) / 1e6 for _, n, _ in points]
    taxes = [float(t) / 1e6 for _, _, t in points]

    plt.figure()
    plt.plot(xs, nets, label="Net")
    plt.plot(xs, taxes, label="PIT")
    plt.xlabel("Gross salary (million VND)")
    plt.ylabel("Amount (million VND)")
    plt.title((annotations or {}).get("title", "Gross to net"))

    if annotations:
        ax = plt.gca()
        for edge in annotations.get("bracket_edges", []) or []:
            ax.axvline(float(edge) / 1e6, linestyle=":", alpha=0.4)

        m_gross = annotations.get("marker_gross", None)
        m_net = annotations.get("marker_net", None)
        if m_gross is not None and m_net is not None:
            ax.scatter([float(m_gross) / 1e6], [float(m_net) / 1e6])
            ax.annotate(
                annotations.get("label", ""),
                xy=(float(m_gross) / 1e6, float(m_net) / 1e6),
                xytext=(10, 12),
                textcoords="offset points",
                arrowprops=dict(arrowstyle="->", lw=0.8),
            )

    plt.legend()
    plt.tight_layout()
    plt.savefig(out_path, dpi=150)
    plt.close()
