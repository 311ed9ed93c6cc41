# src/ridedemand/utils.py
import logging
import re
from pathlib import Path

import pandas as pd

from ridedemand.config import DATE_COL, HORIZON


def setup_logging(level="INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def load_csv(path, parse_dates=None):
    return pd.read_csv(path, parse_dates=parse_dates, low_memory=False)


def ensure_dir(path):
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def train_test_split_time_series(df, date_col=DATE_COL, test_hours=HORIZON):
    # Sort and split by time: last `test_hours` hours as test
    df = df.sort_values(date_col)
    last_date = df[date_col].max()
    cutoff = last_date - pd.Timedelta(hours=test_hours)
    train = df[df[date_col] <= cutoff].copy()
    test = df[df[date_col] > cutoff].copy()
    return train, test


def safe_name(value):
    """File-system friendly version of a sub-area id."""
    return re.sub(r'[^A-Za-z0-9_.-]+', '_', str(value)).strip('_') or 'area'
