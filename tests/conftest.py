import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


def make_hourly_table(areas=('A', 'B'), weeks=4, start='2024-01-01', seed=0):
    """Poisson demand with a daily cycle and quieter weekends."""
    rng = np.random.default_rng(seed)
    idx = pd.date_range(start, periods=weeks * 168, freq='h')
    hour = idx.hour.to_numpy()
    dow = idx.dayofweek.to_numpy()
    frames = []
    for i, area in enumerate(areas):
        lam = (5 + 3 * i) * (1 + 0.8 * np.sin(2 * np.pi * (hour - 6) / 24)) * np.where(dow >= 5, 0.7, 1.0) + 0.5
        frames.append(pd.DataFrame({'sub_area': area, 'datetime': idx, 'demand': rng.poisson(lam)}))
    return pd.concat(frames, ignore_index=True)


def trips_from_table(table, seed=0):
    """One raw ride record per unit of demand, at a random minute inside the hour."""
    rng = np.random.default_rng(seed)
    rows = table.loc[table.index.repeat(table['demand'])]
    minutes = pd.to_timedelta(rng.integers(0, 60, len(rows)), unit='min')
    return pd.DataFrame({
        'booking_id': np.arange(len(rows)),
        'pickup_time': (rows['datetime'] + minutes).dt.strftime('%Y-%m-%d %H:%M:%S').to_numpy(),
        'sub_area': rows['sub_area'].to_numpy(),
    })


@pytest.fixture
def hourly_table():
    return make_hourly_table()


@pytest.fixture
def raw_trips():
    return pd.DataFrame({
        'booking_id': [1, 2, 3, 4, 5, 6, 1],
        'pickup_time': [
            '2024-01-01 00:10:00', '2024-01-01 00:50:00', '2024-01-01 03:05:00',
            'not a date', '2024-01-01 01:30:00', '2024-01-01 02:00:00', '2024-01-01 00:10:00',
        ],
        'sub_area': ['Baner', 'Baner', 'Kothrud', 'Baner', '  ', 'Kothrud', 'Baner'],
    })


@pytest.fixture
def rides_csv(tmp_path):
    table = make_hourly_table(areas=('North', 'South'), weeks=4)
    path = tmp_path / 'rides.csv'
    trips_from_table(table).to_csv(path, index=False)
    return path


@pytest.fixture
def three_week_table():
    return make_hourly_table(weeks=3)


@pytest.fixture
def single_area_table():
    return make_hourly_table(areas=('A',), weeks=4)
