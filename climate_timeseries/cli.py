#!/usr/bin/env python3
"""
Command line entry point for regional climate time series.

Usage Examples:
    # Annual CONUS mean near-surface temperature from two historical files
    climate-series run --source tas_Amon_NorESM2-LM_historical_r1i1p1f1_gn_185001-189912.nc \\
        --source tas_Amon_NorESM2-LM_historical_r1i1p1f1_gn_190001-194912.nc \\
        --variable tas --region CONUS --csv conus_tas_annual.csv --plot conus_tas.png

    # Everything from a configuration file
    climate-series run --config series.yaml

    # Custom box in -180-180 longitudes
    climate-series run --source 'data/tas_*.nc' --variable tas \\
        --bounds 30 45 -110 -90 --convention=-180_180

    # List region presets / describe a file
    climate-series regions
    climate-series inspect data/tas_Amon_NorESM2-LM_historical_r1i1p1f1_gn_185001-189912.nc
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from climate_timeseries.exceptions import SeriesPipelineError
from climate_timeseries.regional.core.grid_reader import GridReader
from climate_timeseries.regional.core.pipeline import PipelineResult, RegionalSeriesPipeline
from climate_timeseries.regional.core.regions import REGION_DESCRIPTIONS, REGION_PRESETS
from climate_timeseries.regional.utils.io_util import write_annual_csv, write_series_csv
from climate_timeseries.regional.utils.logging_util import setup_logging
from climate_timeseries.regional.visualization.series_plot import plot_annual_series
from climate_timeseries.shared.config import ConfigurationError, ConfigurationLoader, PipelineConfig
from climate_timeseries.shared.contracts.climate_data import (
    LongitudeConvention,
    SourceOrdering,
    Weighting,
)

logger = logging.getLogger(__name__)
console = Console()


def _overrides_from_args(args) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {
        'sources': args.source,
        'variable': args.variable,
        'ordering': args.ordering,
        'weighting': args.weighting,
        'max_workers': args.max_workers,
        'time_name': args.time_name,
        'output.annual_csv': args.csv,
        'output.series_csv': args.series_csv,
        'output.plot': args.plot,
    }
    if args.bounds:
        lat_min, lat_max, lon_min, lon_max = args.bounds
        overrides['region'] = {
            'name': args.region or 'custom',
            'lat_min': lat_min,
            'lat_max': lat_max,
            'lon_min': lon_min,
            'lon_max': lon_max,
            'convention': args.convention,
        }
    elif args.region:
        overrides['region'] = args.region
    if args.no_trend:
        overrides['trend'] = False
    if args.verbose:
        overrides['logging.level'] = 'DEBUG'
    return overrides


def build_config(args) -> PipelineConfig:
    """Combine the optional config file with command line flags (flags win)."""
    loader = ConfigurationLoader()
    config_source = args.config if args.config else {}
    return loader.load_pipeline_config(config_source, overrides=_overrides_from_args(args))


def print_result(result: PipelineResult):
    summary = Table(show_header=False, box=None, padding=(0, 1))
    summary.add_column("Metric", style="bold")
    summary.add_column("Value")
    for key, value in result.summary().items():
        if isinstance(value, float):
            value = f"{value:+.4f}"
        summary.add_row(key.replace('_', ' '), str(value))
    console.print(summary)

    table = Table(title=f"{result.variable} annual mean over {result.region.name}",
                  show_header=True, header_style="bold magenta", box=box.SIMPLE)
    table.add_column("Year", style="cyan", justify="right")
    table.add_column(f"Mean ({result.units or '-'})", justify="right")
    table.add_column("Samples", justify="right")
    for year, value, count in zip(result.annual.years, result.annual.values, result.annual.counts):
        table.add_row(str(int(year)), f"{value:.4f}", str(int(count)))
    console.print(table)


def write_outputs(config: PipelineConfig, result: PipelineResult):
    output = config.output
    if output.annual_csv:
        write_annual_csv(result.annual, output.annual_csv)
    if output.series_csv:
        write_series_csv(result.series, output.series_csv)
    if output.plot:
        title = output.plot_title or f"{result.variable} annual mean, {result.region.name}"
        plot_annual_series(result.annual, output.plot, trend=result.trend, title=title)


def run_command(args) -> bool:
    """Run the pipeline from flags and/or a configuration file."""
    try:
        config = build_config(args)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {escape(str(e))}")
        return False

    setup_logging(config.logging)

    try:
        result = RegionalSeriesPipeline(config).run()
    except SeriesPipelineError as e:
        step = e.step.value if e.step else '-'
        console.print(f"[bold red]{type(e).__name__}[/bold red] during {step}: {escape(e.message)}")
        console.print(f"  source: {escape(e.source or '-')}")
        return False

    print_result(result)
    write_outputs(config, result)
    return True


def regions_command(args) -> bool:
    """List region presets."""
    table = Table(title="Region presets", show_header=True, header_style="bold magenta", box=box.SIMPLE)
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Latitude", justify="right")
    table.add_column("Longitude", justify="right")
    table.add_column("Convention")
    for name, bounds in REGION_PRESETS.items():
        table.add_row(
            name,
            REGION_DESCRIPTIONS.get(name, ''),
            f"{bounds.lat_min:g} to {bounds.lat_max:g}",
            f"{bounds.lon_min:g} to {bounds.lon_max:g}",
            bounds.convention.value,
        )
    console.print(table)
    return True


def inspect_command(args) -> bool:
    """Describe the dimensions, variables and time encoding of a source."""
    try:
        summary = GridReader().describe(args.source)
    except SeriesPipelineError as e:
        console.print(f"[bold red]{type(e).__name__}:[/bold red] {escape(str(e))}")
        return False

    console.print(f"[bold]{escape(summary['source'])}[/bold]")
    console.print(f"  dimensions: {summary['dimensions']}")
    console.print(f"  time units: {summary['time_units'] or '-'}  calendar: {summary['calendar'] or '-'}")

    table = Table(show_header=True, header_style="bold magenta", box=box.SIMPLE)
    table.add_column("Variable", style="cyan")
    table.add_column("Dims")
    table.add_column("Units")
    table.add_column("Long name")
    for name, info in summary['variables'].items():
        table.add_row(name, ", ".join(info['dims']), str(info['units'] or '-'), str(info['long_name'] or '-'))
    console.print(table)
    return True


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='climate-series',
        description="Regional annual time series from gridded climate model output",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run --config series.yaml                              # Run from a config file
  %(prog)s run --source 'tas_*.nc' --variable tas --region CONUS  # Run from flags
  %(prog)s regions                                               # List region presets
  %(prog)s inspect file.nc                                       # Describe a source
        """
    )
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    run_parser = subparsers.add_parser('run', help='Extract a regional series')
    run_parser.add_argument('--config', '-c', help='YAML or JSON configuration file')
    run_parser.add_argument('--source', '-s', action='append',
                            help='Source file or glob pattern; repeat in chronological order')
    run_parser.add_argument('--variable', '-v', help='Variable name, e.g. tas')
    run_parser.add_argument('--region', '-r', help=f'Region preset ({", ".join(REGION_PRESETS)}) '
                                                   'or label for --bounds')
    run_parser.add_argument('--bounds', nargs=4, type=float,
                            metavar=('LAT_MIN', 'LAT_MAX', 'LON_MIN', 'LON_MAX'),
                            help='Custom region box')
    run_parser.add_argument('--convention', choices=[c.value for c in LongitudeConvention],
                            default=LongitudeConvention.ZERO_TO_360.value,
                            help='Longitude convention of --bounds')
    run_parser.add_argument('--ordering', choices=[o.value for o in SourceOrdering],
                            help='Trust the given source order or sort sources by time')
    run_parser.add_argument('--weighting', choices=[w.value for w in Weighting],
                            help='Spatial mean weighting')
    run_parser.add_argument('--max-workers', type=int, help='Concurrent source reads')
    run_parser.add_argument('--time-name', help='Name of the time coordinate')
    run_parser.add_argument('--csv', help='Write annual means to this CSV file')
    run_parser.add_argument('--series-csv', help='Write the full regional series to this CSV file')
    run_parser.add_argument('--plot', help='Save an annual plot to this image file')
    run_parser.add_argument('--no-trend', action='store_true', help='Skip the linear trend')
    run_parser.add_argument('--verbose', action='store_true', help='Debug logging')

    subparsers.add_parser('regions', help='List region presets')

    inspect_parser = subparsers.add_parser('inspect', help='Describe a source file')
    inspect_parser.add_argument('source', help='Path to a netCDF file')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with argument parsing."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        'run': run_command,
        'regions': regions_command,
        'inspect': inspect_command,
    }

    try:
        success = commands[args.command](args)
    except KeyboardInterrupt:
        logger.info("Processing interrupted by user")
        return 1

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
