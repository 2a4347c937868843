"""Shared chart style and saving for the rolling sales report figures.

Color scheme: blue, orange, purple, gray (colorblind-friendly)
Style: Excel-like, simple and clean
"""

import matplotlib.pyplot as plt
from pathlib import Path

from rollingsales_config import BOROUGHS

# Color scheme (colorblind-friendly)
COLORS = {
    'blue': '#4472C4',
    'orange': '#ED7D31',
    'purple': '#7030A0',
    'gray': '#808080',
    'green': '#70AD47',
    'red': '#C00000',
    'teal': '#00B0F0',
    'brown': '#997300',
}

BOROUGH_COLORS = dict(zip(BOROUGHS, [COLORS['blue'], COLORS['orange'], COLORS['purple'],
                                     COLORS['green'], COLORS['brown']]))

MARKERS = ['o', 's', '^', 'D', 'v']


def setup_chart_style():
    """Configure matplotlib to produce Excel-like charts."""
    plt.rcParams.update({
        'font.family': 'sans-serif',
        'font.size': 10,
        'axes.titlesize': 12,
        'axes.titleweight': 'bold',
        'axes.labelsize': 10,
        'axes.grid': True,
        'axes.axisbelow': True,
        'grid.alpha': 0.3,
        'grid.linestyle': '-',
        'legend.frameon': True,
        'legend.fancybox': False,
        'legend.edgecolor': 'black',
        'legend.fontsize': 9,
        'figure.facecolor': 'white',
        'axes.facecolor': 'white',
        'axes.edgecolor': 'black',
        'axes.linewidth': 0.8,
    })


def save_chart(fig, output_dir, filename):
    """Save chart with consistent settings. Returns the written path."""
    output_path = Path(output_dir) / filename
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150, bbox_inches='tight', facecolor='white', edgecolor='none')
    plt.close(fig)
    print(f"  Saved: {output_path}")
    return output_path

"""MIT License

Creative Commons CC-BY-SA 4.0 2026 Diego Aguilar-Canabal"""
