# src/ridedemand/pipeline.py
"""
End-to-end run: raw rides CSV -> padded hourly table -> per sub-area model
selection -> one-week forecast -> diagnostics, plots and exports.
"""

import argparse
import logging
import os

from ridedemand import data_prep, diagnostics, eda, report
from ridedemand.config import AREA_COL, HORIZON, OUTPUT_DIR, RAW_DATA
from ridedemand.forecasters import METHODS, REPRESENTATIONS
from ridedemand.model import run_model_selection
from ridedemand.scaling import area_series
from ridedemand.utils import ensure_dir, setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Forecast hourly ride demand per sub-area for the next week")
    p.add_argument('--data', nargs='+', default=[str(RAW_DATA)], help='raw ride CSV path(s) or glob pattern(s)')
    p.add_argument('--time-col', default=None, help='trip start timestamp column (detected if omitted)')
    p.add_argument('--area-col', default=None, help='sub-area id column (detected if omitted)')
    p.add_argument('--id-col', default=None, help='trip id column used to drop repeated records (detected if omitted)')
    p.add_argument('--start', default=None, help='first hour of the study window')
    p.add_argument('--end', default=None, help='last hour of the study window')
    p.add_argument('--top-n', type=int, default=None, help='keep only the N busiest sub-areas')
    p.add_argument('--methods', nargs='+', default=list(METHODS), choices=list(METHODS))
    p.add_argument('--representations', nargs='+', default=list(REPRESENTATIONS), choices=list(REPRESENTATIONS))
    p.add_argument('--horizon', type=int, default=HORIZON, help='hours to forecast; the same number of last hours is held out for scoring')
    p.add_argument('--out', default=str(OUTPUT_DIR), help='output dir')
    p.add_argument('--excel', action='store_true', help='also write an Excel workbook of all tables')
    p.add_argument('--no-plots', action='store_true', help='skip EDA, forecast and residual plots')
    p.add_argument('--log-level', default='INFO')
    return p.parse_args(argv)


def run(args):
    out_dir = ensure_dir(args.out)

    table = data_prep.prepare(args.data, time_col=args.time_col, area_col=args.area_col, id_col=args.id_col,
                              start=args.start, end=args.end, top_n=args.top_n)
    table.to_csv(os.path.join(out_dir, 'processed_hourly.csv'), index=False)

    result = run_model_selection(table, methods=args.methods, representations=args.representations,
                                 horizon=args.horizon)
    lb = diagnostics.residual_report(result['fitted'])
    paths = report.write_outputs(result, out_dir, ljung_box=lb, excel=args.excel)

    if not args.no_plots:
        eda.run_eda(table, ensure_dir(out_dir / 'eda'))
        plots_dir = ensure_dir(out_dir / 'area_plots')
        report.plot_model_scores(result['scores'], os.path.join(out_dir, 'model_scores.png'))
        for area, fitted in result['fitted'].items():
            history = area_series(table, area)
            fc = result['forecast'][result['forecast'][AREA_COL] == area]
            bt = result['backtest'][result['backtest'][AREA_COL] == area]
            report.plot_area_forecast(area, history, bt, fc, plots_dir)
            diagnostics.plot_residuals(area, fitted.residuals, plots_dir)
        logger.info("Saved plots to %s", out_dir)

    return paths


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level)
    paths = run(args)
    logger.info("Forecast written to %s", paths['forecast'])


if __name__ == '__main__':
    main()
