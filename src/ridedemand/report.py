# src/ridedemand/report.py
import logging
import os

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from ridedemand.config import AREA_COL, DATE_COL, WEEKLY_PERIOD
from ridedemand.utils import ensure_dir, safe_name

logger = logging.getLogger(__name__)


def plot_area_forecast(area, history, backtest, forecast, out_dir):
    """Last two weeks of demand, the held-out week with the winner's backtest, and the final forecast."""
    recent = history.iloc[-2 * WEEKLY_PERIOD:]
    plt.figure(figsize=(14, 5))
    plt.plot(recent.index, recent.values, label='Actual demand', color='black', alpha=0.7)
    if backtest is not None and not backtest.empty:
        plt.plot(backtest[DATE_COL], backtest['predicted'], label='Backtest forecast', color='tab:orange')
    plt.plot(forecast[DATE_COL], forecast['forecast_demand'], label='Forecast', color='tab:red')
    method = forecast['method'].iloc[0]
    rep = forecast['representation'].iloc[0]
    plt.title(f'Sub-area: {area} ({method}, {rep})')
    plt.xlabel('Date')
    plt.ylabel('Rides per hour')
    plt.legend()
    plt.tight_layout()
    path = os.path.join(out_dir, f'{safe_name(area)}_forecast.png')
    plt.savefig(path)
    plt.close()
    return path


def plot_model_scores(scores, path):
    ok = scores[scores['mae'] != float('inf')].copy()
    if ok.empty:
        return None
    ok['candidate'] = ok['method'] + ' / ' + ok['representation']
    plt.figure(figsize=(12, max(4, 1.2 * ok[AREA_COL].nunique())))
    sns.barplot(data=ok, y=AREA_COL, x='mae', hue='candidate', orient='h')
    plt.title('Backtest MAE per candidate model')
    plt.xlabel('MAE (rides per hour)')
    plt.tight_layout()
    plt.savefig(path, bbox_inches='tight')
    plt.close()
    return path


def write_outputs(result, out_dir, ljung_box=None, excel=False):
    """CSV exports of the run, plus an optional Excel workbook with one sheet per table."""
    out_dir = ensure_dir(out_dir)
    tables = {
        'forecast': result['forecast'],
        'model_scores': result['scores'],
        'winners': result['winners'],
        'backtest': result['backtest'],
        'scaling': result['scaler'].params(),
    }
    if ljung_box is not None:
        tables['ljung_box'] = ljung_box

    paths = {}
    for name, df in tables.items():
        paths[name] = os.path.join(out_dir, f'{name}.csv')
        df.to_csv(paths[name], index=False)
        logger.info("Saved %s to %s", name, paths[name])

    if excel:
        paths['excel'] = os.path.join(out_dir, 'forecast_dashboard.xlsx')
        with pd.ExcelWriter(paths['excel'], engine='xlsxwriter') as writer:
            for name, df in tables.items():
                df.to_excel(writer, sheet_name=name[:31], index=False)
        logger.info("Dashboard saved successfully at %s", paths['excel'])
    return paths
