# src/ridedemand/config.py
"""
Run constants. Every stage reads its defaults from here; command-line flags
override them.
"""

from pathlib import Path

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
RAW_DATA = Path("data") / "rides.csv"
PROCESSED_DATA = Path("data") / "processed_hourly.csv"
OUTPUT_DIR = Path("outputs")

# ---------------------------------------------------------------------------
# Columns of the working table
# ---------------------------------------------------------------------------
AREA_COL = "sub_area"
DATE_COL = "datetime"
DEMAND_COL = "demand"

# ---------------------------------------------------------------------------
# Time grid
# ---------------------------------------------------------------------------
HOURLY_FREQ = "h"
DAILY_PERIOD = 24    # hours in a day
WEEKLY_PERIOD = 168  # hours in a week
TEST_DAYS = 7        # held-out window for the backtest
HORIZON = TEST_DAYS * DAILY_PERIOD  # hours to forecast; the backtest holds out as many

# Fourier pairs used to carry the weekly cycle into SARIMAX
WEEKLY_FOURIER_ORDER = 4
