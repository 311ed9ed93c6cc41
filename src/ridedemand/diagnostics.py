# src/ridedemand/diagnostics.py
"""
Post-hoc residual checks of the winning models (Ljung-Box + plots).
Nothing here feeds back into model selection.
"""

import logging
import os

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from statsmodels.graphics.tsaplots import plot_acf
from statsmodels.stats.diagnostic import acorr_ljungbox

from ridedemand.config import AREA_COL, DAILY_PERIOD, WEEKLY_PERIOD
from ridedemand.utils import safe_name

logger = logging.getLogger(__name__)

LB_COLUMNS = ['lag', 'lb_stat', 'lb_pvalue']


def ljung_box(residuals, lags=(DAILY_PERIOD, WEEKLY_PERIOD)):
    """
    Ljung-Box statistic and p-value at each requested lag.

    Lags longer than a fifth of the sample are dropped; an empty frame comes
    back when nothing is left to test.
    """
    resid = pd.Series(np.asarray(residuals, dtype=float)).replace([np.inf, -np.inf], np.nan).dropna()
    max_lag = len(resid) // 5
    usable = [int(lag) for lag in lags if 0 < lag <= max_lag]
    if not usable or resid.std() == 0:
        return pd.DataFrame(columns=LB_COLUMNS)
    lb = acorr_ljungbox(resid, lags=usable, return_df=True)
    return lb.rename_axis('lag').reset_index()[LB_COLUMNS]


def residual_report(fitted_by_area, lags=(DAILY_PERIOD, WEEKLY_PERIOD)):
    """Ljung-Box table for the winning model of every sub-area."""
    frames = []
    for area, fitted in fitted_by_area.items():
        lb = ljung_box(fitted.residuals, lags=lags)
        if lb.empty:
            logger.info("[%s] Skipping Ljung-Box test: not enough residuals", area)
            continue
        lb.insert(0, AREA_COL, area)
        lb.insert(1, 'method', fitted.method)
        lb.insert(2, 'representation', fitted.representation)
        worst = lb['lb_pvalue'].min()
        if worst <= 0.05:
            logger.info("[%s] residual autocorrelation left (min p=%.4f)", area, worst)
        frames.append(lb)
    if not frames:
        return pd.DataFrame(columns=[AREA_COL, 'method', 'representation'] + LB_COLUMNS)
    return pd.concat(frames, ignore_index=True)


def plot_residuals(area, residuals, out_dir, lags=WEEKLY_PERIOD):
    resid = pd.Series(residuals).dropna()
    fig, axes = plt.subplots(3, 1, figsize=(12, 9))
    resid.plot(ax=axes[0])
    axes[0].set_title(f'Residuals: {area}')
    axes[1].hist(resid, bins=40)
    axes[1].set_title('Residual distribution')
    plot_acf(resid, ax=axes[2], lags=min(lags, len(resid) // 2 - 1))
    plt.tight_layout()
    path = os.path.join(out_dir, f'{safe_name(area)}_residuals.png')
    fig.savefig(path, bbox_inches='tight')
    plt.close(fig)
    return path
