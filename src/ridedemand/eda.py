# src/ridedemand/eda.py
"""
Exploratory analysis of the padded hourly demand table: summary stats and plots.

Key views:
1) total demand over time (24-hour rolling mean)
2) diurnal and weekly pattern (avg demand by hour, by weekday, hour x weekday)
3) classical decomposition of total demand at the daily and weekly periods
"""

import argparse
import logging
import os
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from statsmodels.tsa.seasonal import seasonal_decompose

from ridedemand.config import AREA_COL, DAILY_PERIOD, DATE_COL, DEMAND_COL, OUTPUT_DIR, WEEKLY_PERIOD
from ridedemand.utils import load_csv, setup_logging

logger = logging.getLogger(__name__)


def parse_args():
    p = argparse.ArgumentParser()
    p.add_argument('--data', required=True, help='processed data CSV (hourly)')
    p.add_argument('--out', default=str(OUTPUT_DIR), help='output dir')
    p.add_argument('--log-level', default='INFO')
    return p.parse_args()


def summary_stats(df, col):
    s = df[col].describe()[['mean', '50%', 'std', 'min', 'max']].rename({'50%': 'median'})
    return s


def write_summary(df, path):
    metrics = {'hourly demand per sub-area': summary_stats(df, DEMAND_COL).to_dict()}
    total = df.groupby(DATE_COL)[DEMAND_COL].sum().to_frame()
    metrics['hourly demand, all sub-areas'] = summary_stats(total, DEMAND_COL).to_dict()
    with open(path, 'w') as f:
        f.write(f"Sub-areas: {df[AREA_COL].nunique()}\n")
        f.write(f"Range: {df[DATE_COL].min()} -> {df[DATE_COL].max()}\n")
        f.write(f"Zero-demand hours: {(df[DEMAND_COL] == 0).mean():.1%}\n\n")
        for k, v in metrics.items():
            f.write(f"Metric: {k}\n")
            for stat, val in v.items():
                f.write(f"  {stat}: {val}\n")
            f.write("\n")
    return path


def plot_overview(df, out_dir):
    """Time, hour-of-day, weekday and per-area views of demand."""
    df = df.copy()
    df['hour'] = df[DATE_COL].dt.hour
    df['weekday'] = df[DATE_COL].dt.weekday
    total = df.groupby(DATE_COL)[DEMAND_COL].sum()
    paths = []

    # 1. time series plot
    plt.figure(figsize=(12, 4))
    total.rolling(window=DAILY_PERIOD).mean().plot()
    plt.title('24-hour Rolling Mean of Demand (all sub-areas)')
    plt.ylabel('rides per hour (rolling mean)')
    paths.append(os.path.join(out_dir, 'timeseries_rolling24.png'))
    plt.savefig(paths[-1], bbox_inches='tight')
    plt.close()

    # 2. average demand by hour (diurnal pattern)
    plt.figure(figsize=(8, 4))
    hourly = df.groupby('hour')[DEMAND_COL].mean()
    sns.barplot(x=hourly.index, y=hourly.values)
    plt.title('Average demand by hour of day')
    plt.xlabel('Hour (0-23)')
    plt.ylabel('Average rides per sub-area')
    paths.append(os.path.join(out_dir, 'avg_by_hour.png'))
    plt.savefig(paths[-1], bbox_inches='tight')
    plt.close()

    # 3. weekday pattern
    plt.figure(figsize=(8, 4))
    wd = df.groupby('weekday')[DEMAND_COL].mean()
    sns.lineplot(x=wd.index, y=wd.values, marker='o')
    plt.title('Average demand by weekday (0=Mon)')
    paths.append(os.path.join(out_dir, 'avg_by_weekday.png'))
    plt.savefig(paths[-1], bbox_inches='tight')
    plt.close()

    # 4. hour x weekday heatmap
    plt.figure(figsize=(8, 8))
    heat = df.pivot_table(index='hour', columns='weekday', values=DEMAND_COL, aggfunc='mean')
    sns.heatmap(heat, cmap='viridis', cbar_kws={'label': 'Avg rides'})
    plt.title('Hourly Demand Heatmap')
    plt.xlabel('Weekday (0=Mon)')
    paths.append(os.path.join(out_dir, 'heatmap_hour_weekday.png'))
    plt.savefig(paths[-1], bbox_inches='tight')
    plt.close()

    # 5. total demand per sub-area
    plt.figure(figsize=(10, 4))
    per_area = df.groupby(AREA_COL)[DEMAND_COL].sum().sort_values(ascending=False)
    sns.barplot(x=per_area.index.astype(str), y=per_area.values)
    plt.xticks(rotation=90)
    plt.title('Total rides per sub-area')
    paths.append(os.path.join(out_dir, 'total_by_area.png'))
    plt.savefig(paths[-1], bbox_inches='tight')
    plt.close()

    return paths


def plot_decomposition(series, period, path):
    """Additive decomposition; needs at least two full periods."""
    if len(series) < 2 * period:
        logger.info("Skipping decomposition at period %s: only %s hours", period, len(series))
        return None
    decomposition = seasonal_decompose(series, model='additive', period=period)
    fig, axes = plt.subplots(4, 1, figsize=(15, 12))
    decomposition.observed.plot(ax=axes[0], title='Observed')
    decomposition.trend.plot(ax=axes[1], title='Trend')
    decomposition.seasonal.plot(ax=axes[2], title=f'Seasonal (period={period}h)')
    decomposition.resid.plot(ax=axes[3], title='Residual')
    plt.tight_layout()
    fig.savefig(path, bbox_inches='tight')
    plt.close(fig)
    return path


def run_eda(df, out_dir):
    Path(out_dir).mkdir(parents=True, exist_ok=True)
    write_summary(df, os.path.join(out_dir, 'summary_metrics.txt'))
    paths = plot_overview(df, out_dir)
    total = df.groupby(DATE_COL)[DEMAND_COL].sum()
    for period, name in [(DAILY_PERIOD, 'daily'), (WEEKLY_PERIOD, 'weekly')]:
        p = plot_decomposition(total, period, os.path.join(out_dir, f'decomposition_{name}.png'))
        if p:
            paths.append(p)
    logger.info("Saved EDA plots to %s", out_dir)
    return paths


def main():
    args = parse_args()
    setup_logging(args.log_level)
    df = load_csv(args.data, parse_dates=[DATE_COL])
    # ensure numeric
    df[DEMAND_COL] = pd.to_numeric(df[DEMAND_COL], errors='coerce')
    df = df.dropna(subset=[DEMAND_COL])
    run_eda(df, args.out)


if __name__ == '__main__':
    main()
