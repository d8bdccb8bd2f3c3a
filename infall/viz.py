"""Visualization module for the infall engine.

Offline plots of a recorded run (lifecycle.run_ticks history) and of a
single render snapshot. These are analysis aids for tuning the engine;
real-time drawing belongs to the external renderer.

Design principles:
- Radii plotted in units of rs, with the horizon floor marked
- One line per element, thin and translucent so lattices stay readable
- Agg backend, files written with dpi=150 by default
"""

from typing import Dict, List
import numpy as np
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from infall.render import RenderState, HorizonMarker


def plot_infall_history(
    history: Dict[str, np.ndarray],
    rs: float,
    output_path: str,
    horizon_floor: float = 1e-3,
    dpi: int = 150
) -> None:
    """Plot radius, stretch and opacity of every element against tick.

    Creates a three-panel figure:
    - Top: r / rs, with rs and the horizon floor marked
    - Middle: stretch factor (log scale)
    - Bottom: opacity

    Parameters
    ----------
    history : Dict[str, np.ndarray]
        History from lifecycle.run_ticks(). Must contain 'tick', 'r',
        'stretch', 'opacity'.
    rs : float
        Schwarzschild radius [m].
    output_path : str
        Output file path (e.g., "output/history.png").
    horizon_floor : float, optional
        Floor fraction drawn as a dashed line (default: 1e-3).
    dpi : int, optional
        Output resolution (default: 150).
    """
    ticks = history['tick']
    r = history['r'] / rs
    n_bodies = r.shape[1]
    alpha = max(0.1, min(0.8, 8.0 / n_bodies))

    fig, axes = plt.subplots(3, 1, figsize=(10, 10), sharex=True)

    ax = axes[0]
    ax.plot(ticks, r, color='tab:blue', linewidth=0.8, alpha=alpha)
    ax.axhline(1.0, color='black', linewidth=1.5, label='horizon')
    ax.axhline(1.0 + horizon_floor, color='red', linestyle='--', linewidth=1.0,
               label='horizon floor')
    ax.set_ylabel('r / rs', fontsize=12)
    ax.set_title('Radial infall', fontsize=14, fontweight='bold')
    ax.legend(loc='best', fontsize=10)
    ax.grid(True, alpha=0.3)

    ax = axes[1]
    ax.plot(ticks, history['stretch'], color='tab:orange', linewidth=0.8, alpha=alpha)
    ax.set_yscale('log')
    ax.set_ylabel('stretch', fontsize=12)
    ax.grid(True, alpha=0.3, which='both')

    ax = axes[2]
    ax.plot(ticks, history['opacity'], color='tab:green', linewidth=0.8, alpha=alpha)
    ax.set_ylim(-0.05, 1.05)
    ax.set_xlabel('tick', fontsize=12)
    ax.set_ylabel('opacity', fontsize=12)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)

    print(f"Saved infall history plot to {output_path}")


def plot_render_snapshot(
    states: List[RenderState],
    marker: HorizonMarker,
    output_path: str,
    dpi: int = 150
) -> None:
    """Side view of one render snapshot in the plane of the infall axis.

    Each visible element is drawn as an ellipse-like marker whose size
    follows its radial scale and whose alpha follows its opacity; the
    horizon ring is drawn as a shaded annulus.

    Parameters
    ----------
    states : List[RenderState]
        Snapshots from Simulation.snapshots().
    marker : HorizonMarker
        Horizon ring and observer position from render.horizon_marker().
    output_path : str
        Output file path.
    dpi : int, optional
        Output resolution (default: 150).
    """
    fig, ax = plt.subplots(figsize=(8, 8))

    theta = np.linspace(0.0, 2.0 * np.pi, 256)
    for radius in (marker.inner_radius, marker.outer_radius):
        ax.plot(radius * np.cos(theta), radius * np.sin(theta), color='darkorange', linewidth=1.0)
    ax.fill_between(marker.inner_radius * np.cos(theta[:129]),
                    marker.inner_radius * np.sin(theta[:129]),
                    -marker.inner_radius * np.sin(theta[:129]),
                    color='black', alpha=0.8)

    visible = [s for s in states if s.visible]
    if visible:
        # project onto (lateral x, distance along z)
        xs = np.array([s.position[0] for s in visible])
        zs = np.array([s.position[2] for s in visible])
        sizes = np.array([20.0 * s.scale[0] for s in visible])
        colors = np.zeros((len(visible), 4))
        colors[:, 2] = 1.0
        colors[:, 3] = [s.opacity for s in visible]
        ax.scatter(xs, zs, s=sizes, c=colors, edgecolors='none')

    ax.scatter([marker.observer_position[0]], [marker.observer_position[2]],
               color='green', marker='^', s=80, label='observer')

    ax.set_aspect('equal')
    ax.set_xlabel('x [display units]', fontsize=12)
    ax.set_ylabel('z [display units]', fontsize=12)
    ax.set_title(f'Render snapshot ({len(visible)}/{len(states)} visible)',
                 fontsize=14, fontweight='bold')
    ax.legend(loc='best', fontsize=10)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)

    print(f"Saved render snapshot plot to {output_path}")
