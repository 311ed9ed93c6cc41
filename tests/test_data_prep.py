import pandas as pd
import pytest

from ridedemand import data_prep


def test_detect_columns(raw_trips):
    assert data_prep.detect_datetime_column(raw_trips) == 'pickup_time'
    assert data_prep.detect_area_column(raw_trips) == 'sub_area'


def test_detect_column_missing_raises():
    with pytest.raises(ValueError):
        data_prep.detect_area_column(pd.DataFrame({'pickup_time': [], 'fare': []}))


def test_parse_datetime_series_day_first():
    parsed = data_prep.parse_datetime_series(pd.Series(['13/02/2024 08:15', '01/03/2024 23:59']))
    assert parsed.tolist() == [pd.Timestamp('2024-02-13 08:15'), pd.Timestamp('2024-03-01 23:59')]


def test_parse_datetime_series_iso_first():
    parsed = data_prep.parse_datetime_series(pd.Series(['2024-02-01 08:15:00', '2024-02-01T09:30', 'garbage']))
    assert parsed.iloc[0] == pd.Timestamp('2024-02-01 08:15')
    assert parsed.iloc[1] == pd.Timestamp('2024-02-01 09:30')
    assert pd.isna(parsed.iloc[2])


def test_clean_trips_drops_bad_rows(raw_trips):
    trips = data_prep.clean_trips(raw_trips)
    # repeated booking_id 1, bad timestamp row 4 and blank area row 5 are gone
    assert len(trips) == 4
    assert list(trips.columns) == ['sub_area', 'datetime']
    assert set(trips['sub_area']) == {'Baner', 'Kothrud'}


def test_clean_trips_nothing_left():
    df = pd.DataFrame({'pickup_time': ['bad'], 'sub_area': ['X']})
    with pytest.raises(ValueError):
        data_prep.clean_trips(df)


def test_hourly_counts(raw_trips):
    counts = data_prep.hourly_counts(data_prep.clean_trips(raw_trips))
    baner = counts[counts['sub_area'] == 'Baner']
    assert baner['demand'].tolist() == [2]
    assert baner['datetime'].iloc[0] == pd.Timestamp('2024-01-01 00:00')


def test_pad_hourly_full_grid_zero_filled(raw_trips):
    counts = data_prep.hourly_counts(data_prep.clean_trips(raw_trips))
    padded = data_prep.pad_hourly(counts)
    # window is 00:00 .. 03:00 for every sub-area
    assert padded.groupby('sub_area').size().tolist() == [4, 4]
    assert padded['demand'].sum() == counts['demand'].sum()
    baner = padded[padded['sub_area'] == 'Baner'].set_index('datetime')['demand']
    assert baner[pd.Timestamp('2024-01-01 03:00')] == 0


def test_pad_hourly_explicit_window(raw_trips):
    counts = data_prep.hourly_counts(data_prep.clean_trips(raw_trips))
    padded = data_prep.pad_hourly(counts, start='2024-01-01 00:00', end='2024-01-01 05:00')
    assert padded.groupby('sub_area').size().tolist() == [6, 6]


def test_pad_hourly_empty_window(raw_trips):
    counts = data_prep.hourly_counts(data_prep.clean_trips(raw_trips))
    with pytest.raises(ValueError):
        data_prep.pad_hourly(counts, start='2024-01-02', end='2024-01-01')


def test_select_areas_top_n(hourly_table):
    kept = data_prep.select_areas(hourly_table, top_n=1)
    # area B has the higher mean demand
    assert kept['sub_area'].unique().tolist() == ['B']


def test_load_any_concatenates_glob(tmp_path, raw_trips):
    raw_trips.iloc[:3].to_csv(tmp_path / 'part1.csv', index=False)
    raw_trips.iloc[3:].to_csv(tmp_path / 'part2.csv', index=False)
    df = data_prep.load_any([str(tmp_path / 'part*.csv')])
    assert len(df) == len(raw_trips)


def test_load_any_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        data_prep.load_any(tmp_path / 'nope.csv')


def test_prepare_end_to_end(rides_csv):
    table = data_prep.prepare([rides_csv])
    sizes = table.groupby('sub_area').size()
    assert sizes.nunique() == 1
    assert table['demand'].min() >= 0


def test_same_minute_rides_without_id_all_count():
    df = pd.DataFrame({
        'pickup_time': ['2024-01-01 08:15:00'] * 3,
        'sub_area': ['Baner'] * 3,
    })
    trips = data_prep.clean_trips(df)
    assert len(trips) == 3
    assert data_prep.hourly_counts(trips)['demand'].tolist() == [3]


def test_repeated_records_dropped_by_explicit_id_col():
    df = pd.DataFrame({
        'ref': ['a', 'a', 'b'],
        'pickup_time': ['2024-01-01 08:15:00'] * 3,
        'sub_area': ['Baner'] * 3,
    })
    assert len(data_prep.clean_trips(df)) == 3
    assert len(data_prep.clean_trips(df, id_col='ref')) == 2


def test_detect_id_column():
    assert data_prep.detect_id_column(pd.DataFrame(columns=['Ride_ID', 'pickup_time'])) == 'Ride_ID'
    assert data_prep.detect_id_column(pd.DataFrame(columns=['pickup_time', 'sub_area'])) is None


def test_prepare_ranks_areas_inside_window(tmp_path):
    rows = ([('2024-01-01 10:00:00', 'Big')] * 10
            + [('2024-01-02 10:00:00', 'Mid')] * 2
            + [('2024-01-02 11:00:00', 'Small')])
    path = tmp_path / 'rides.csv'
    pd.DataFrame(rows, columns=['pickup_time', 'sub_area']).to_csv(path, index=False)

    table = data_prep.prepare([path], start='2024-01-02 00:00', end='2024-01-02 23:00', top_n=2)
    assert sorted(table['sub_area'].unique()) == ['Mid', 'Small']
    assert table.groupby('sub_area').size().tolist() == [24, 24]
