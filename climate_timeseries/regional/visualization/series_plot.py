#!/usr/bin/env python3
"""
Plot of an annual regional series with its linear trend.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt

from climate_timeseries.regional.core.resample import AnnualSeries, TrendLine

logger = logging.getLogger(__name__)


def plot_annual_series(annual: AnnualSeries,
                       output_file: Union[str, Path],
                       trend: Optional[TrendLine] = None,
                       title: Optional[str] = None,
                       ylabel: Optional[str] = None) -> Path:
    """
    Save a line plot of annual means, with the trend line if one is given.

    Returns:
        Path of the saved image
    """
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    years = np.asarray(annual.years)
    fig, ax = plt.subplots(figsize=(10, 5))
    try:
        ax.plot(years, annual.values, marker='o', markersize=3, linewidth=1.2,
                color='tab:blue', label='Annual mean')

        if trend is not None and years.size:
            ax.plot(years, trend.evaluate(years), linestyle='--', color='tab:red',
                    label=f'Trend ({trend.slope_per_decade:+.3f} per decade)')

        ax.set_xlabel('Year')
        ax.set_ylabel(ylabel or annual.units or 'Value')
        ax.set_title(title or 'Annual regional mean', fontsize=14, fontweight='bold')
        ax.grid(True, alpha=0.3)
        ax.legend(loc='best')

        plt.tight_layout()
        plt.savefig(output_file, dpi=200, bbox_inches='tight')
    finally:
        plt.close(fig)

    logger.info(f"Saved plot to {output_file}")
    return output_file
