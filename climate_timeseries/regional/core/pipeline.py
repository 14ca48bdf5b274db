#!/usr/bin/env python3
"""
Regional time-series pipeline.

Reads every source, puts each one's time axis on model-calendar dates,
stacks the fields along time, averages the region box at each step and
aggregates the result to annual means.

Any failure aborts the run; there is no partial result.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from itertools import chain
from typing import List, Optional, Tuple

import numpy as np

from climate_timeseries.exceptions import (
    AllMissing,
    ChronologyError,
    SeriesPipelineError,
    SourceUnavailable,
)
from climate_timeseries.regional.core.calendar import ModelDate, normalize, seconds_of_day
from climate_timeseries.regional.core.concatenator import concatenate
from climate_timeseries.regional.core.grid_reader import GridReader, SourceData
from climate_timeseries.regional.core.regions import RegionalAggregator
from climate_timeseries.regional.core.resample import (
    AnnualSeries,
    TimeSeries1D,
    TrendLine,
    resample_annual,
)
from climate_timeseries.regional.utils.io_util import expand_sources
from climate_timeseries.shared.config.pipeline_config import PipelineConfig
from climate_timeseries.shared.contracts.climate_data import RegionBounds, SourceOrdering

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outputs of one pipeline run."""
    series: TimeSeries1D
    annual: AnnualSeries
    trend: Optional[TrendLine]
    field_shape: Tuple[int, ...]
    sources: List[str]
    region: RegionBounds
    variable: str
    units: Optional[str] = None
    calendars: List[str] = field(default_factory=list)

    def summary(self) -> dict:
        summary = {
            'variable': self.variable,
            'units': self.units,
            'region': self.region.name,
            'sources': len(self.sources),
            'field_shape': list(self.field_shape),
            'time_steps': len(self.series),
            'first_date': str(self.series.dates[0]) if len(self.series) else None,
            'last_date': str(self.series.dates[-1]) if len(self.series) else None,
            'years': len(self.annual),
            'calendars': self.calendars,
        }
        if self.trend is not None:
            summary['trend_per_decade'] = self.trend.slope_per_decade
        return summary


@dataclass
class _DatedSource:
    data: SourceData
    dates: List[ModelDate]
    seconds: np.ndarray  # time of day of each step

    def instant(self, index: int) -> Tuple[ModelDate, float]:
        return self.dates[index], float(self.seconds[index])


def _format_instant(instant: Tuple[ModelDate, float]) -> str:
    date, seconds = instant
    if not seconds:
        return str(date)
    minutes, secs = divmod(int(seconds), 60)
    return f"{date} {minutes // 60:02d}:{minutes % 60:02d}:{secs:02d}"


def _step_owners(dated: List[_DatedSource]) -> List[str]:
    """Locator of the source each stitched time step came from."""
    return list(chain.from_iterable([item.data.locator] * len(item.dates) for item in dated))


class RegionalSeriesPipeline:
    """Runs one configured extraction from source files to annual means."""

    def __init__(self, config: PipelineConfig, reader: Optional[GridReader] = None):
        self.config = config
        self.reader = reader or GridReader(engine=config.engine)
        self.aggregator = RegionalAggregator(config.region_bounds(), config.weighting)

    def resolve_sources(self) -> List[str]:
        """Expand glob patterns in the configured source list."""
        try:
            return expand_sources(self.config.sources)
        except FileNotFoundError as e:
            raise SourceUnavailable(str(e)) from e

    def read_sources(self, locators: List[str]) -> List[SourceData]:
        """Read all sources; results always come back in ``locators`` order."""
        variable = self.config.variable
        time_name = self.config.time_name

        def read(locator: str) -> SourceData:
            return self.reader.read_source(locator, variable, time_name)

        workers = min(self.config.max_workers, len(locators))
        if workers > 1:
            logger.info(f"Reading {len(locators)} sources with {workers} threads")
            with ThreadPoolExecutor(max_workers=workers) as executor:
                # map() yields in submission order and re-raises the first failure in that order
                return list(executor.map(read, locators))

        logger.info(f"Reading {len(locators)} sources")
        return [read(locator) for locator in locators]

    def normalize_times(self, sources: List[SourceData]) -> List[_DatedSource]:
        dated = []
        for source in sources:
            try:
                dates = normalize(source.time_offsets, source.time_encoding)
                seconds = seconds_of_day(source.time_offsets, source.time_encoding)
            except SeriesPipelineError as e:
                raise e.with_source(source.locator)
            dated.append(_DatedSource(source, dates, seconds))
        return dated

    def order_sources(self, dated: List[_DatedSource]) -> List[_DatedSource]:
        if self.config.ordering == SourceOrdering.TIME:
            # Sources without time steps sort first; sort is stable for ties
            return sorted(dated, key=lambda item: (item.instant(0),) if item.dates else ())
        return dated

    @staticmethod
    def check_chronology(dated: List[_DatedSource]) -> List[ModelDate]:
        """
        Stitch the per-source dates and require time to strictly increase.

        Steps are compared by date and time of day, so sub-daily sources
        with several steps on one date pass.

        Raises:
            ChronologyError: Naming the source where time stops advancing
        """
        owners = _step_owners(dated)
        dates = list(chain.from_iterable(item.dates for item in dated))
        instants = [item.instant(i) for item in dated for i in range(len(item.dates))]

        for i in range(1, len(instants)):
            if not instants[i - 1] < instants[i]:
                raise ChronologyError(
                    f"Time does not advance at step {i}: {_format_instant(instants[i - 1])} "
                    f"({owners[i - 1]}) is followed by {_format_instant(instants[i])}; "
                    f"check the order of the sources",
                    source=owners[i]
                )
        return dates

    def run(self) -> PipelineResult:
        config = self.config
        locators = self.resolve_sources()
        logger.info(f"Extracting '{config.variable}' over region '{self.aggregator.bounds.name}' "
                    f"from {len(locators)} source(s)")

        sources = self.read_sources(locators)
        dated = self.order_sources(self.normalize_times(sources))

        calendars = sorted({item.data.time_encoding.calendar_kind.value for item in dated})
        if len(calendars) > 1:
            logger.warning(f"Sources use different calendars: {calendars}")

        stacked = concatenate([item.data.field for item in dated])
        dates = self.check_chronology(dated)
        logger.info(f"Stacked field {stacked.shape}: {dates[0] if dates else '-'} to "
                    f"{dates[-1] if dates else '-'}")

        try:
            # Concatenation guarantees every source shares the first one's spatial axes
            first = dated[0].data
            values = self.aggregator.aggregate(stacked, first.lon_axis, first.lat_axis)
        except AllMissing as e:
            if e.time_index is not None:
                e.with_source(_step_owners(dated)[e.time_index], replace=True)
            raise
        units = dated[0].data.field.units
        series = TimeSeries1D(dates=dates, values=values, units=units)

        annual = resample_annual(series)
        trend = None
        if config.trend and len(annual) >= 2:
            trend = annual.linear_trend()
            logger.info(f"Trend: {trend.slope_per_decade:+.4f} {units or ''} per decade")

        return PipelineResult(
            series=series,
            annual=annual,
            trend=trend,
            field_shape=stacked.shape,
            sources=[item.data.locator for item in dated],
            region=self.aggregator.bounds,
            variable=config.variable,
            units=units,
            calendars=calendars,
        )


def run_pipeline(config: PipelineConfig) -> PipelineResult:
    """Run the pipeline for a validated configuration."""
    return RegionalSeriesPipeline(config).run()
