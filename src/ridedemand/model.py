# src/ridedemand/model.py
"""
Per sub-area model selection.

For every sub-area, each compatible (representation, method) pair is fitted on
the training window, asked for the last `horizon` hours (one week by default),
scored by MAE in trip units, and the lowest-MAE pair is refitted on the full
history for the final forecast.
"""

import argparse
import logging
from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error

from ridedemand.config import AREA_COL, DATE_COL, DEMAND_COL, HORIZON, OUTPUT_DIR, PROCESSED_DATA
from ridedemand.forecasters import METHODS, REPRESENTATIONS, fit_forecaster, is_compatible
from ridedemand.scaling import AreaScaler, area_series
from ridedemand.utils import ensure_dir, load_csv, setup_logging, train_test_split_time_series

logger = logging.getLogger(__name__)


class ModelSelectionError(RuntimeError):
    """No candidate model could be fitted for a sub-area."""


def parse_args():
    p = argparse.ArgumentParser(description="Select the best forecasting model per sub-area and forecast")
    p.add_argument('--data', default=str(PROCESSED_DATA), help='processed data CSV (hourly, padded)')
    p.add_argument('--out', default=str(OUTPUT_DIR), help='output dir')
    p.add_argument('--methods', nargs='+', default=list(METHODS), choices=list(METHODS))
    p.add_argument('--representations', nargs='+', default=list(REPRESENTATIONS), choices=list(REPRESENTATIONS))
    p.add_argument('--horizon', type=int, default=HORIZON, help='hours to forecast; the same number of last hours is held out for scoring')
    p.add_argument('--log-level', default='INFO')
    return p.parse_args()


def evaluate(y_true, y_pred):
    mae = mean_absolute_error(y_true, y_pred)
    rmse = np.sqrt(mean_squared_error(y_true, y_pred))
    return {'mae': mae, 'rmse': rmse}


def candidate_grid(methods=None, representations=None, n_obs=None):
    """All (representation, method) pairs worth fitting, in grid order."""
    methods = methods or list(METHODS)
    representations = representations or list(REPRESENTATIONS)
    grid = []
    for rep in representations:
        for method in methods:
            if is_compatible(method, rep, n_obs):
                grid.append((rep, method))
            else:
                logger.debug("Skipping %s on %s (n=%s)", method, rep, n_obs)
    return grid


def backtest_area(area, train, test, scaler, candidates):
    """
    Fit every candidate on `train` and score it against `test`.

    `train` and `test` are raw hourly demand series of one sub-area.
    Returns (scores as list of dicts, {(representation, method): prediction}).
    """
    y_train = scaler.transform(area, train)
    scores = []
    predictions = {}
    for rep, method in candidates:
        row = {AREA_COL: area, 'representation': rep, 'method': method,
               'mae': np.inf, 'rmse': np.inf, 'error': None}
        try:
            fitted = fit_forecaster(method, rep, y_train)
            pred = scaler.inverse_transform(area, fitted.forecast(len(test)))
            pred.index = test.index
            row.update(evaluate(test.to_numpy(), pred.to_numpy()))
            predictions[(rep, method)] = pred
            logger.info("[%s] %-13s %-13s MAE=%.3f", area, rep, method, row['mae'])
        except Exception as e:
            row['error'] = str(e)
            logger.warning("[%s] %s on %s failed: %s", area, method, rep, e)
        scores.append(row)
    return scores, predictions


def select_best(scores):
    """Row with the smallest finite MAE; first in grid order on ties."""
    scores = pd.DataFrame(scores)
    finite = scores[np.isfinite(scores['mae'].astype(float))] if not scores.empty else scores
    if finite.empty:
        area = scores[AREA_COL].iloc[0] if not scores.empty else '?'
        raise ModelSelectionError(f"Every candidate model failed for sub-area '{area}'")
    return finite.loc[finite['mae'].astype(float).idxmin()]


def refit_and_forecast(area, series, scaler, method, representation, horizon=HORIZON):
    """Refit the winner on the whole history and forecast `horizon` hours of demand."""
    fitted = fit_forecaster(method, representation, scaler.transform(area, series))
    demand = scaler.inverse_transform(area, fitted.forecast(horizon)).clip(lower=0)
    forecast = pd.DataFrame({
        AREA_COL: area,
        DATE_COL: demand.index,
        'forecast_demand': demand.to_numpy(),
        'method': method,
        'representation': representation,
    })
    return forecast, fitted


def run_model_selection(table, methods=None, representations=None, horizon=HORIZON, scaler=None):
    """
    Backtest, select and refit for every sub-area of the padded table.

    Returns a dict with DataFrames 'scores', 'winners', 'forecast', 'backtest',
    the fitted 'scaler' and the refitted winners under 'fitted' (by area).
    """
    scaler = scaler or AreaScaler().fit(table)
    train_tbl, test_tbl = train_test_split_time_series(table, date_col=DATE_COL, test_hours=horizon)

    all_scores, winners, forecasts, backtests = [], [], [], []
    fitted_by_area = {}
    areas = sorted(table[AREA_COL].unique())
    for i, area in enumerate(areas, start=1):
        logger.info("Sub-area %s/%s: %s", i, len(areas), area)
        train = area_series(train_tbl, area)
        test = area_series(test_tbl, area)
        candidates = candidate_grid(methods, representations, n_obs=len(train))
        if not candidates or test.empty:
            logger.warning("Skipping sub-area '%s' due to insufficient data (%s training hours)", area, len(train))
            continue

        scores, predictions = backtest_area(area, train, test, scaler, candidates)
        all_scores.extend(scores)
        try:
            best = select_best(scores)
            full = pd.concat([train, test]).asfreq(train.index.freq)
            forecast, fitted = refit_and_forecast(area, full, scaler, best['method'], best['representation'], horizon)
        except Exception as e:
            logger.error("Error forecasting for sub-area '%s': %s", area, e)
            continue

        logger.info("[%s] best: %s on %s (MAE=%.3f)", area, best['method'], best['representation'], best['mae'])
        winners.append(best.drop(labels='error').to_dict())
        forecasts.append(forecast)
        fitted_by_area[area] = fitted
        pred = predictions[(best['representation'], best['method'])]
        backtests.append(pd.DataFrame({
            AREA_COL: area, DATE_COL: test.index,
            'actual': test.to_numpy(), 'predicted': pred.to_numpy(),
        }))

    if not forecasts:
        raise ModelSelectionError("No sub-area produced a forecast")

    return {
        'scores': pd.DataFrame(all_scores),
        'winners': pd.DataFrame(winners),
        'forecast': pd.concat(forecasts, ignore_index=True),
        'backtest': pd.concat(backtests, ignore_index=True),
        'fitted': fitted_by_area,
        'scaler': scaler,
    }


def main():
    args = parse_args()
    setup_logging(args.log_level)
    out_dir = ensure_dir(args.out)
    table = load_csv(args.data, parse_dates=[DATE_COL])
    table[AREA_COL] = table[AREA_COL].astype(str)
    table[DEMAND_COL] = pd.to_numeric(table[DEMAND_COL], errors='coerce').fillna(0)

    result = run_model_selection(table, methods=args.methods, representations=args.representations,
                                 horizon=args.horizon)
    forecast_path = Path(out_dir) / 'forecast.csv'
    result['forecast'].to_csv(forecast_path, index=False)
    result['scores'].to_csv(Path(out_dir) / 'model_scores.csv', index=False)
    logger.info("Saved forecast to %s", forecast_path)


if __name__ == '__main__':
    main()
