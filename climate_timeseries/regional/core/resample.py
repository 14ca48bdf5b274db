#!/usr/bin/env python3
"""
Time series containers and annual aggregation.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from climate_timeseries.regional.core.calendar import ModelDate, is_strictly_increasing

logger = logging.getLogger(__name__)


@dataclass
class TimeSeries1D:
    """Regional mean values with one model-calendar date per value."""
    dates: List[ModelDate]
    values: np.ndarray
    units: Optional[str] = None

    def __post_init__(self):
        self.dates = list(self.dates)
        self.values = np.asarray(self.values, dtype=np.float64).ravel()
        if len(self.dates) != self.values.size:
            raise ValueError(f"{len(self.dates)} dates but {self.values.size} values")

    def __len__(self) -> int:
        return len(self.dates)

    @property
    def years(self) -> np.ndarray:
        return np.array([d.year for d in self.dates], dtype=np.int64)

    @property
    def is_chronological(self) -> bool:
        return is_strictly_increasing(self.dates)

    def to_dataframe(self) -> pd.DataFrame:
        # Model dates (e.g. 30 February) are kept as strings, not Timestamps
        return pd.DataFrame({
            'date': [d.isoformat() for d in self.dates],
            'year': [d.year for d in self.dates],
            'month': [d.month for d in self.dates],
            'day': [d.day for d in self.dates],
            'value': self.values,
        })


@dataclass(frozen=True)
class TrendLine:
    """Least-squares linear trend of an annual series."""
    slope_per_year: float
    intercept: float

    @property
    def slope_per_decade(self) -> float:
        return self.slope_per_year * 10.0

    def evaluate(self, years) -> np.ndarray:
        return self.intercept + self.slope_per_year * np.asarray(years, dtype=np.float64)


@dataclass
class AnnualSeries:
    """One mean value per calendar year, years ascending."""
    years: np.ndarray
    values: np.ndarray
    counts: np.ndarray
    units: Optional[str] = None

    def __len__(self) -> int:
        return int(np.asarray(self.years).size)

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            'year': np.asarray(self.years, dtype=np.int64),
            'value': np.asarray(self.values, dtype=np.float64),
            'n_samples': np.asarray(self.counts, dtype=np.int64),
        })

    def linear_trend(self) -> TrendLine:
        """
        Fit ``value = intercept + slope * year``.

        Raises:
            ValueError: If fewer than two years are available
        """
        if len(self) < 2:
            raise ValueError(f"A trend needs at least 2 years, got {len(self)}")
        slope, intercept = np.polyfit(np.asarray(self.years, dtype=np.float64),
                                      np.asarray(self.values, dtype=np.float64), 1)
        return TrendLine(slope_per_year=float(slope), intercept=float(intercept))


def resample_annual(series: TimeSeries1D) -> AnnualSeries:
    """
    Average a series by calendar year.

    Each year's value is the mean of however many samples fall in it, so a
    trailing year with six months is averaged over six values. No gap filling.
    """
    if len(series) == 0:
        return AnnualSeries(years=np.array([], dtype=np.int64),
                            values=np.array([], dtype=np.float64),
                            counts=np.array([], dtype=np.int64),
                            units=series.units)

    frame = pd.DataFrame({'year': series.years, 'value': series.values})
    grouped = frame.groupby('year', sort=True)['value'].agg(['mean', 'count'])

    partial = grouped.index[grouped['count'] != grouped['count'].max()]
    if len(partial):
        logger.info(f"Years with fewer samples than the rest: {list(map(int, partial))}")

    return AnnualSeries(
        years=grouped.index.to_numpy(dtype=np.int64),
        values=grouped['mean'].to_numpy(dtype=np.float64),
        counts=grouped['count'].to_numpy(dtype=np.int64),
        units=series.units,
    )


class AnnualResampler:
    """Object form of :func:`resample_annual`."""

    def resample(self, series: TimeSeries1D) -> AnnualSeries:
        return resample_annual(series)
