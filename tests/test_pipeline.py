import pandas as pd

from ridedemand import eda, pipeline
from ridedemand.report import write_outputs


def test_pipeline_end_to_end(rides_csv, tmp_path):
    out = tmp_path / 'out'
    pipeline.main([
        '--data', str(rides_csv),
        '--methods', 'holt_winters', 'ets',
        '--representations', 'daily',
        '--out', str(out),
        '--excel',
        '--log-level', 'WARNING',
    ])

    forecast = pd.read_csv(out / 'forecast.csv', parse_dates=['datetime'])
    assert list(forecast.columns) == ['sub_area', 'datetime', 'forecast_demand', 'method', 'representation']
    assert forecast.groupby('sub_area').size().tolist() == [168, 168]

    for name in ['model_scores', 'winners', 'backtest', 'scaling', 'ljung_box', 'processed_hourly']:
        assert (out / f'{name}.csv').exists()
    assert (out / 'forecast_dashboard.xlsx').exists()
    assert (out / 'model_scores.png').exists()
    assert (out / 'area_plots' / 'North_forecast.png').exists()
    assert (out / 'area_plots' / 'South_residuals.png').exists()
    assert (out / 'eda' / 'summary_metrics.txt').exists()


def test_eda_outputs(hourly_table, tmp_path):
    paths = eda.run_eda(hourly_table, tmp_path)
    names = {p.rsplit('/', 1)[-1] for p in paths}
    assert {'avg_by_hour.png', 'heatmap_hour_weekday.png', 'decomposition_weekly.png'} <= names
    assert 'Sub-areas: 2' in (tmp_path / 'summary_metrics.txt').read_text()


def test_summary_stats(hourly_table):
    s = eda.summary_stats(hourly_table, 'demand')
    assert list(s.index) == ['mean', 'median', 'std', 'min', 'max']


def test_write_outputs_without_excel(hourly_table, tmp_path):
    from ridedemand.model import run_model_selection

    result = run_model_selection(hourly_table, methods=['holt_winters'], representations=['daily'])
    paths = write_outputs(result, tmp_path)
    assert 'excel' not in paths
    assert pd.read_csv(paths['scaling'])['sub_area'].tolist() == ['A', 'B']
