# src/ridedemand/forecasters.py
"""
The five forecasting methods and the two seasonal representations they run on.

Representations
---------------
- daily        : one seasonal cycle of 24 hours
- daily_weekly : daily (24h) and weekly (168h) cycles together

Methods
-------
- stl          : MSTL decomposition, ETS on the seasonally adjusted series,
                 seasonal-naive continuation of every seasonal component
- ets          : ETS(A, N|Ad, A), trend picked by AIC
- arima        : SARIMA(1,0,1)(1,1,1)[24]; weekly cycle as Fourier regressors
- tbats        : TBATS over all seasonal periods of the representation
- holt_winters : additive Holt-Winters

ETS and Holt-Winters only take one seasonal period, so they are not run on the
daily_weekly representation.

All methods take a scaled hourly series with a fixed frequency and return a
FittedForecaster.
"""

import warnings

import numpy as np
import pandas as pd
from statsmodels.tsa.deterministic import DeterministicProcess, Fourier
from statsmodels.tsa.exponential_smoothing.ets import ETSModel
from statsmodels.tsa.holtwinters import ExponentialSmoothing
from statsmodels.tsa.seasonal import MSTL
from statsmodels.tsa.statespace.sarimax import SARIMAX
from tbats import TBATS

from ridedemand.config import DAILY_PERIOD, HOURLY_FREQ, WEEKLY_FOURIER_ORDER, WEEKLY_PERIOD

REPRESENTATIONS = {
    'daily': (DAILY_PERIOD,),
    'daily_weekly': (DAILY_PERIOD, WEEKLY_PERIOD),
}

# Minimum number of full cycles of the longest period needed to fit.
# MSTL drops any period that is not shorter than half the series.
MIN_CYCLES = 3


class FittedForecaster:
    """A fitted model bound to the series it was trained on."""

    def __init__(self, method, representation, result, forecast_fn, residuals, last_timestamp):
        self.method = method
        self.representation = representation
        self.result = result
        self.residuals = residuals
        self.last_timestamp = last_timestamp
        self._forecast_fn = forecast_fn

    def forecast(self, steps):
        """Point forecast for the next `steps` hours, in the scale it was fitted on."""
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            values = np.asarray(self._forecast_fn(steps), dtype=float)
        index = pd.date_range(self.last_timestamp + pd.Timedelta(hours=1), periods=steps, freq=HOURLY_FREQ)
        return pd.Series(values, index=index, name='forecast')

    def __repr__(self):
        return f"FittedForecaster({self.method!r}, {self.representation!r})"


def seasonal_naive(values, period, steps):
    """Repeat the last full cycle of `values` for `steps` hours."""
    return np.resize(np.asarray(values, dtype=float)[-period:], steps)


# ---------------------------------------------------------------------------
# Methods
# ---------------------------------------------------------------------------

def fit_stl(y, periods):
    mstl = MSTL(y, periods=periods)
    decomposition = mstl.fit()
    # one column per seasonal period, in the order MSTL kept them
    seasonal = np.asarray(decomposition.seasonal, dtype=float).reshape(len(y), -1)
    adjusted = y - seasonal.sum(axis=1)

    ets = ETSModel(adjusted, error='add', trend='add', damped_trend=True).fit(disp=False)

    def fcast(steps):
        total = np.asarray(ets.forecast(steps), dtype=float)
        for i, period in enumerate(mstl.periods):
            total = total + seasonal_naive(seasonal[:, i], period, steps)
        return total

    return decomposition, fcast, ets.resid


def fit_ets(y, periods):
    period = periods[0]
    best = None
    for trend, damped in [(None, False), ('add', True)]:
        res = ETSModel(y, error='add', trend=trend, damped_trend=damped,
                       seasonal='add', seasonal_periods=period).fit(disp=False)
        if best is None or res.aic < best.aic:
            best = res

    def fcast(steps):
        return best.forecast(steps)

    return best, fcast, best.resid


def fit_arima(y, periods):
    daily = periods[0]
    dp = None
    exog = None
    if len(periods) > 1:
        dp = DeterministicProcess(
            y.index,
            additional_terms=[Fourier(period=p, order=WEEKLY_FOURIER_ORDER) for p in periods[1:]],
        )
        exog = dp.in_sample()

    res = SARIMAX(
        y,
        exog=exog,
        order=(1, 0, 1),
        seasonal_order=(1, 1, 1, daily),
        enforce_stationarity=False,
        enforce_invertibility=False,
    ).fit(disp=False, maxiter=50)

    def fcast(steps):
        if dp is None:
            return res.forecast(steps)
        return res.forecast(steps, exog=dp.out_of_sample(steps))

    # first seasonal cycle is eaten by the seasonal difference
    return res, fcast, res.resid.iloc[daily:]


def fit_tbats(y, periods):
    estimator = TBATS(
        seasonal_periods=list(periods),
        use_box_cox=False,
        use_arma_errors=False,
        show_warnings=False,
        n_jobs=1,
    )
    model = estimator.fit(np.asarray(y, dtype=float))

    def fcast(steps):
        return model.forecast(steps=steps)

    return model, fcast, pd.Series(model.resid, index=y.index)


def fit_holt_winters(y, periods):
    res = ExponentialSmoothing(
        y,
        trend='add',
        seasonal='add',
        seasonal_periods=periods[0],
        initialization_method='estimated',
    ).fit()

    def fcast(steps):
        return res.forecast(steps)

    return res, fcast, res.resid


# method name -> (fit function, representations it accepts)
METHODS = {
    'stl': (fit_stl, ('daily', 'daily_weekly')),
    'ets': (fit_ets, ('daily',)),
    'arima': (fit_arima, ('daily', 'daily_weekly')),
    'tbats': (fit_tbats, ('daily', 'daily_weekly')),
    'holt_winters': (fit_holt_winters, ('daily',)),
}


def _lookup(method, representation):
    if method not in METHODS:
        raise KeyError(f"Unknown method '{method}'. Choose from {list(METHODS)}")
    if representation not in REPRESENTATIONS:
        raise KeyError(f"Unknown representation '{representation}'. Choose from {list(REPRESENTATIONS)}")
    return METHODS[method], REPRESENTATIONS[representation]


def is_compatible(method, representation, n_obs=None):
    """True when `method` can be fitted on `representation` with `n_obs` hours."""
    (_, accepted), periods = _lookup(method, representation)
    if representation not in accepted:
        return False
    if n_obs is not None and n_obs < MIN_CYCLES * max(periods):
        return False
    return True


def fit_forecaster(method, representation, y):
    """Fit `method` on the scaled hourly series `y` using `representation`."""
    (fit_fn, _), periods = _lookup(method, representation)
    if not is_compatible(method, representation, len(y)):
        raise ValueError(f"{method} cannot be fitted on {representation} with {len(y)} observations")
    if y.index.freq is None:
        y = y.asfreq(HOURLY_FREQ)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        result, fcast, resid = fit_fn(y, periods)
    return FittedForecaster(method, representation, result, fcast, resid, y.index[-1])
