#!/usr/bin/env python3
"""
File helpers: source discovery and CSV output.
"""

import glob
import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from climate_timeseries.regional.core.resample import AnnualSeries, TimeSeries1D

logger = logging.getLogger(__name__)

_GLOB_CHARS = re.compile(r'[*?\[]')


def extract_period_from_filename(file_path: Union[str, Path]) -> Optional[Tuple[int, int]]:
    """
    Extract the period from a CMIP-style filename.

    Expected formats:
    - tas_Amon_NorESM2-LM_historical_r1i1p1f1_gn_185001-189912.nc -> (185001, 189912)
    - tas_day_NorESM2-LM_ssp245_r1i1p1f1_gn_2015.nc -> (2015, 2015)
    - tas_day_NorESM2-LM_ssp245_r1i1p1f1_gn_2015_v1.1.nc -> (2015, 2015)
    """
    filename = Path(file_path).name
    match = re.search(r'_(\d{4,8})-(\d{4,8})(?:_v[\d.]+)?\.nc$', filename)
    if match:
        return int(match.group(1)), int(match.group(2))
    match = re.search(r'_(\d{4})(?:_v[\d.]+)?\.nc$', filename)
    if match:
        year = int(match.group(1))
        return year, year
    return None


def _period_sort_key(file_path: str):
    period = extract_period_from_filename(file_path)
    start = str(period[0]) if period else ''
    # Compare on the leading year so 185001 and 1850 rank together
    return (period is None, start[:4], start, file_path)


def expand_sources(sources: Sequence[Union[str, Path]]) -> List[str]:
    """
    Expand glob patterns into file lists.

    Each pattern's matches are ordered by the period in their filenames
    (falling back to name order). Plain locators pass through unchanged and
    the overall order of the entries is kept.

    Raises:
        FileNotFoundError: If a glob pattern matches nothing
    """
    expanded: List[str] = []
    for source in sources:
        source = str(source)
        if '://' in source or not _GLOB_CHARS.search(source):
            expanded.append(source)
            continue

        matches = glob.glob(source)
        if not matches:
            raise FileNotFoundError(f"No files match pattern: {source}")
        matches.sort(key=_period_sort_key)
        logger.debug(f"Pattern {source} matched {len(matches)} files")
        expanded.extend(matches)
    return expanded


def write_series_csv(series: TimeSeries1D, output_path: Union[str, Path]) -> Path:
    """Write the monthly (or native-step) series to CSV."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    series.to_dataframe().to_csv(output_path, index=False)
    logger.info(f"Saved {len(series)} time steps to {output_path}")
    return output_path


def write_annual_csv(annual: AnnualSeries, output_path: Union[str, Path]) -> Path:
    """Write the annual series to CSV."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    annual.to_dataframe().to_csv(output_path, index=False)
    logger.info(f"Saved {len(annual)} annual values to {output_path}")
    return output_path
