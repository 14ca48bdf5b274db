import sys

from climate_timeseries.cli import main

sys.exit(main())
