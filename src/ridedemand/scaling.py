# src/ridedemand/scaling.py
"""
Square-root + standardisation of hourly demand, one fitted transform per sub-area.

Models are fitted on the scaled series; forecasts are brought back to trip
counts with `inverse_transform`, which never returns negative demand.
"""

import numpy as np
import pandas as pd
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import FunctionTransformer, StandardScaler

from ridedemand.config import AREA_COL, DATE_COL, DEMAND_COL, HOURLY_FREQ


def _clipped_square(x):
    return np.square(np.clip(x, 0, None))


def make_scaler():
    return Pipeline([
        ('sqrt', FunctionTransformer(np.sqrt, inverse_func=_clipped_square, check_inverse=False)),
        ('scaler', StandardScaler()),
    ])


class AreaScaler:
    """Holds the fitted sqrt/standardise pipeline of every sub-area."""

    def __init__(self):
        self.pipelines = {}

    def fit(self, table):
        for area, grp in table.groupby(AREA_COL):
            values = grp[DEMAND_COL].to_numpy(dtype=float).reshape(-1, 1)
            self.pipelines[area] = make_scaler().fit(values)
        return self

    def _pipeline(self, area):
        try:
            return self.pipelines[area]
        except KeyError:
            raise KeyError(f"No scaler fitted for sub-area '{area}'") from None

    def transform(self, area, series):
        """Scale a demand series; keeps the index when given a Series."""
        values = np.asarray(series, dtype=float).reshape(-1, 1)
        out = self._pipeline(area).transform(values).ravel()
        if isinstance(series, pd.Series):
            return pd.Series(out, index=series.index, name=series.name)
        return out

    def inverse_transform(self, area, values):
        """Back to demand units (trips per hour)."""
        arr = np.asarray(values, dtype=float).reshape(-1, 1)
        out = self._pipeline(area).inverse_transform(arr).ravel()
        if isinstance(values, pd.Series):
            return pd.Series(out, index=values.index, name=values.name)
        return out

    def params(self):
        rows = []
        for area, pipe in self.pipelines.items():
            sc = pipe.named_steps['scaler']
            rows.append({AREA_COL: area, 'sqrt_mean': sc.mean_[0], 'sqrt_std': sc.scale_[0]})
        return pd.DataFrame(rows, columns=[AREA_COL, 'sqrt_mean', 'sqrt_std'])


def area_series(table, area):
    """Hourly demand of one sub-area as a Series with a fixed hourly frequency."""
    grp = table[table[AREA_COL] == area].sort_values(DATE_COL)
    s = pd.Series(grp[DEMAND_COL].to_numpy(dtype=float), index=pd.DatetimeIndex(grp[DATE_COL]), name=area)
    s.index.freq = HOURLY_FREQ
    return s
