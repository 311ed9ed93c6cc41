# src/ridedemand/data_prep.py
"""
Turn raw trip records into the padded hourly demand table.

Input: one or more CSVs with a trip start timestamp and a sub-area id per row.
Output: long table (sub_area, datetime, demand) with every sub-area on the same
complete hourly grid; hours without trips carry zero demand.
"""

import argparse
import glob
import logging
from pathlib import Path

import pandas as pd

from ridedemand.config import AREA_COL, DATE_COL, DEMAND_COL, HOURLY_FREQ, PROCESSED_DATA, RAW_DATA
from ridedemand.utils import load_csv, setup_logging

logger = logging.getLogger(__name__)

TIME_TOKENS = ['date', 'time', 'start', 'timestamp', 'pickup']
AREA_TOKENS = ['sub_area', 'subarea', 'area', 'zone', 'region', 'district', 'cell']
ID_COLUMNS = ['ride_id', 'trip_id', 'booking_id', 'order_id', 'id']


def parse_args():
    p = argparse.ArgumentParser(description="Aggregate raw ride records into a padded hourly demand CSV")
    p.add_argument('--data', nargs='+', default=[str(RAW_DATA)], help='input CSV path(s) or glob pattern(s)')
    p.add_argument('--out', default=str(PROCESSED_DATA), help='path to write processed hourly CSV')
    p.add_argument('--time-col', default=None, help='trip start timestamp column (detected if omitted)')
    p.add_argument('--area-col', default=None, help='sub-area id column (detected if omitted)')
    p.add_argument('--id-col', default=None, help='trip id column used to drop repeated records (detected if omitted)')
    p.add_argument('--start', default=None, help='first hour of the study window')
    p.add_argument('--end', default=None, help='last hour of the study window')
    p.add_argument('--top-n', type=int, default=None, help='keep only the N busiest sub-areas')
    p.add_argument('--log-level', default='INFO')
    return p.parse_args()


def expand_paths(patterns):
    """Resolve paths and glob patterns to a sorted list of existing files."""
    files = []
    for pattern in patterns:
        matches = sorted(glob.glob(str(pattern)))
        if not matches:
            raise FileNotFoundError(f"Input file not found: {pattern}")
        files.extend(matches)
    return files


def load_any(paths):
    """Read every CSV and stack them into one frame."""
    if isinstance(paths, (str, Path)):
        paths = [paths]
    files = expand_paths(paths)
    frames = []
    for f in files:
        logger.info("Reading %s", f)
        frames.append(load_csv(f))
    return pd.concat(frames, ignore_index=True)


def _detect_column(df, tokens, fallbacks, what):
    lowered = {c: c.lower() for c in df.columns}
    for tok in tokens:
        for col, low in lowered.items():
            if tok in low:
                return col
    for alt in fallbacks:
        if alt in df.columns:
            return alt
    raise ValueError(f"No {what} column found. Pass it explicitly (columns: {list(df.columns)}).")


def detect_datetime_column(df):
    """Return the best candidate trip start timestamp column or raise ValueError."""
    return _detect_column(df, TIME_TOKENS, ['datetime', 'started_at', 'ts'], 'datetime-like')


def detect_area_column(df):
    """Return the best candidate sub-area column or raise ValueError."""
    return _detect_column(df, AREA_TOKENS, ['location', 'location_id', 'hex'], 'sub-area')


def parse_datetime_series(series):
    """
    Parse trip timestamps, unparsable values become NaT.

    ISO 8601 is tried first; when more than 10% fail, day-first formats and then
    per-element inference (day-first) are tried, keeping the parse with the
    fewest failures.
    """
    parsed = pd.to_datetime(series, format='ISO8601', errors='coerce')
    if parsed.isna().sum() > len(parsed) * 0.1:
        for fmt in ['%d/%m/%Y %H:%M', '%d/%m/%Y %H:%M:%S']:
            alt = pd.to_datetime(series, format=fmt, errors='coerce')
            if alt.isna().sum() < parsed.isna().sum():
                parsed = alt
    if parsed.isna().sum() > len(parsed) * 0.1:
        alt = pd.to_datetime(series, format='mixed', dayfirst=True, errors='coerce')
        if alt.isna().sum() < parsed.isna().sum():
            parsed = alt
    return parsed


def detect_id_column(df):
    """Return the trip id column if one is present, else None."""
    lowered = {c.lower(): c for c in df.columns}
    for name in ID_COLUMNS:
        if name in lowered:
            return lowered[name]
    return None


def clean_trips(df, time_col=None, area_col=None, id_col=None):
    """
    Keep only usable trip records and rename to canonical columns.

    Repeated records are dropped by trip id only; rides without an id that
    share a start time and sub-area are all kept.

    Returns a frame with columns [sub_area, datetime].
    """
    time_col = time_col or detect_datetime_column(df)
    area_col = area_col or detect_area_column(df)
    id_col = id_col or detect_id_column(df)
    for col in (time_col, area_col, id_col):
        if col is not None and col not in df.columns:
            raise ValueError(f"Column '{col}' not in input (columns: {list(df.columns)})")

    n_raw = len(df)
    if id_col is not None:
        df = df.drop_duplicates(subset=[id_col])
    trips = pd.DataFrame({
        AREA_COL: df[area_col].astype('string').str.strip(),
        DATE_COL: parse_datetime_series(df[time_col]),
    })
    bad_area = trips[AREA_COL].isna() | trips[AREA_COL].isin(['', 'nan', 'None'])
    bad_time = trips[DATE_COL].isna()
    trips = trips[~bad_area & ~bad_time].reset_index(drop=True)
    trips[AREA_COL] = trips[AREA_COL].astype(str)

    logger.info(
        "Cleaned trips: %s kept of %s (duplicates %s, bad timestamp %s, missing sub-area %s)",
        len(trips), n_raw, n_raw - len(df), int(bad_time.sum()), int(bad_area.sum()),
    )
    if trips.empty:
        raise ValueError("No usable trip records left after cleaning.")
    return trips


def hourly_counts(trips):
    """Count trips per (sub_area, hour)."""
    hours = trips[DATE_COL].dt.floor(HOURLY_FREQ)
    counts = (
        trips.groupby([trips[AREA_COL], hours])
        .size()
        .rename(DEMAND_COL)
        .reset_index()
    )
    return counts.sort_values([AREA_COL, DATE_COL]).reset_index(drop=True)


def pad_hourly(counts, start=None, end=None):
    """
    Put every sub-area on the full hourly grid of the study window.

    Hours with no trips get zero demand. The window defaults to the first and
    last observed hour over all sub-areas.
    """
    start = pd.Timestamp(start).floor(HOURLY_FREQ) if start is not None else counts[DATE_COL].min()
    end = pd.Timestamp(end).floor(HOURLY_FREQ) if end is not None else counts[DATE_COL].max()
    if start > end:
        raise ValueError(f"Empty study window: {start} > {end}")

    counts = counts[(counts[DATE_COL] >= start) & (counts[DATE_COL] <= end)]
    areas = sorted(counts[AREA_COL].unique())
    grid = pd.MultiIndex.from_product(
        [areas, pd.date_range(start, end, freq=HOURLY_FREQ)],
        names=[AREA_COL, DATE_COL],
    )
    padded = (
        counts.set_index([AREA_COL, DATE_COL])[DEMAND_COL]
        .reindex(grid, fill_value=0)
        .astype(int)
        .reset_index()
    )
    n_filled = len(padded) - len(counts)
    logger.info("Padded %s sub-areas over %s hours (%s empty hours filled with 0)",
                len(areas), len(grid.levels[1]), n_filled)
    return padded


def select_areas(counts, top_n=None, min_total=0):
    """Keep sub-areas with at least `min_total` trips, busiest `top_n` first."""
    totals = counts.groupby(AREA_COL)[DEMAND_COL].sum().sort_values(ascending=False)
    totals = totals[totals >= min_total]
    if top_n is not None:
        totals = totals.head(top_n)
    keep = totals.index.tolist()
    logger.info("Selected %s sub-areas: %s", len(keep), keep)
    return counts[counts[AREA_COL].isin(keep)].reset_index(drop=True)


def prepare(paths, time_col=None, area_col=None, id_col=None, start=None, end=None, top_n=None):
    """Load, clean, count, pad to the study window, then keep the busiest sub-areas."""
    raw = load_any(paths)
    trips = clean_trips(raw, time_col=time_col, area_col=area_col, id_col=id_col)
    padded = pad_hourly(hourly_counts(trips), start=start, end=end)
    return select_areas(padded, top_n=top_n)


def main():
    args = parse_args()
    setup_logging(args.log_level)
    processed = prepare(args.data, time_col=args.time_col, area_col=args.area_col, id_col=args.id_col,
                        start=args.start, end=args.end, top_n=args.top_n)
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    processed.to_csv(out_path, index=False)
    logger.info("Saved processed data to %s", out_path)


if __name__ == '__main__':
    main()
