#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
ARIMA Forecast of Coffee Bean Prices
------------------------------------
Fits an ARIMA model to the yearly bean price series and forecasts a few
years ahead, following the Box-Jenkins steps:
1. Check that the series is complete and long enough
2. Choose the differencing order with the KPSS stationarity test
3. Select (p, q) by grid search on an information criterion
4. Diagnostic checking of the residuals
5. Forecasting with prediction intervals
"""

import numpy as np
import pandas as pd
from statsmodels.tsa.arima.model import ARIMA
from statsmodels.tsa.stattools import kpss
from statsmodels.stats.diagnostic import acorr_ljungbox
import warnings
warnings.filterwarnings('ignore')

from errors import InsufficientDataError, SeriesGapError

MIN_SERIES_LENGTH = 4
INFORMATION_CRITERIA = ('aic', 'aicc', 'bic', 'hqic')


def prepare_series(df, target='bean_price_usd_per_lb'):
    """
    Extract the yearly series to model, ordered by year.

    Parameters:
    -----------
    df : pd.DataFrame
        Table with a 'year' column and the target column
    target : str
        Column to forecast

    Returns:
    --------
    pd.Series
        Target values indexed by year
    """
    series = df[['year', target]].dropna().sort_values('year').set_index('year')[target]

    if len(series) < MIN_SERIES_LENGTH:
        raise InsufficientDataError(
            f"ARIMA needs at least {MIN_SERIES_LENGTH} yearly observations, got {len(series)}"
        )

    steps = np.diff(series.index.values)
    if (steps != 1).any():
        missing = sorted(set(range(series.index.min(), series.index.max() + 1)) - set(series.index))
        if missing:
            raise SeriesGapError(f"Yearly series for {target} is missing years: {missing}")
        raise SeriesGapError(f"Yearly series for {target} has duplicate years")

    return series.astype(float)


def kpss_pvalue(result):
    """P-value from a KPSS result, whether a KPSSResult or the legacy tuple."""
    if hasattr(result, 'pvalue'):
        return float(result.pvalue)
    _, p_value, _, _ = result
    return float(p_value)


def select_differencing(series, max_d=1, alpha=0.05):
    """
    Number of differences needed for the KPSS test to stop rejecting stationarity.

    Parameters:
    -----------
    series : pd.Series
        Series to test
    max_d : int
        Upper bound on the differencing order
    alpha : float
        KPSS significance level

    Returns:
    --------
    int
        Differencing order d
    """
    values = np.asarray(series, dtype=float)
    d = 0
    while d < max_d:
        if np.ptp(values) == 0:
            break
        try:
            result = kpss(values, regression='c', nlags='auto')
        except (ValueError, np.linalg.LinAlgError, OverflowError) as e:
            print(f"Warning: KPSS test failed at d={d}: {e}")
            break
        p_value = kpss_pvalue(result)
        if p_value >= alpha:
            break
        values = np.diff(values)
        d += 1
        if len(values) < 3:
            break
    return d


def grid_search_arima(series, information_criterion='aic'):
    """
    Fit every (p, d, q) candidate and keep the one with the lowest information criterion.

    The differencing order comes from the KPSS test; AR and MA orders are
    capped so that short series stay identifiable.

    Parameters:
    -----------
    series : pd.Series
        Yearly series to model
    information_criterion : str
        'aic', 'aicc', 'bic' or 'hqic'

    Returns:
    --------
    tuple
        (best fitted ARIMAResults, best order, DataFrame of all candidates)
    """
    if information_criterion not in INFORMATION_CRITERIA:
        raise ValueError(f"information_criterion must be one of {INFORMATION_CRITERIA}")

    n_obs = len(series)
    max_order = max(1, min(3, (n_obs - 1) // 3))
    max_d = 2 if n_obs >= 10 else 1
    d = select_differencing(series, max_d=max_d)

    print(f"\nPerforming grid search for ARIMA(p, {d}, q) with p, q <= {max_order} "
          f"by {information_criterion.upper()}...")

    values = np.asarray(series, dtype=float)
    best_score = float('inf')
    best_order = None
    best_model = None
    candidates = []

    for p in range(max_order + 1):
        for q in range(max_order + 1):
            # Each parameter needs at least one observation after differencing
            if p + q + 1 >= n_obs - d:
                continue
            try:
                result = ARIMA(values, order=(p, d, q)).fit()
            except (ValueError, np.linalg.LinAlgError) as e:
                print(f"Warning: ARIMA({p}, {d}, {q}) failed: {e}")
                continue

            score = getattr(result, information_criterion)
            candidates.append({'p': p, 'd': d, 'q': q, information_criterion: score})

            if np.isfinite(score) and score < best_score:
                best_score = score
                best_order = (p, d, q)
                best_model = result

    if best_model is None:
        raise InsufficientDataError(f"No ARIMA model could be fitted to {n_obs} observations")

    candidates = (
        pd.DataFrame(candidates)
        .sort_values(information_criterion, kind='mergesort')
        .reset_index(drop=True)
    )
    print(f"Best ARIMA model: {best_order} ({information_criterion.upper()} {best_score:.2f})")

    return best_model, best_order, candidates


def ljung_box_pvalue(residuals, n_obs):
    """P-value of the Ljung-Box test for autocorrelation left in the residuals."""
    lags = max(1, min(5, n_obs // 2 - 1))
    try:
        result = acorr_ljungbox(residuals, lags=[lags])
        return float(result['lb_pvalue'].iloc[0])
    except (ValueError, np.linalg.LinAlgError) as e:
        print(f"Warning: Ljung-Box test failed: {e}")
        return np.nan


def build_arima_model(df, target='bean_price_usd_per_lb', horizon=5, alpha=0.05,
                      information_criterion='aic'):
    """
    Build the ARIMA model and forecast `horizon` years ahead.

    Parameters:
    -----------
    df : pd.DataFrame
        Yearly table with 'year' and the target column
    target : str
        Column to forecast
    horizon : int
        Number of future years
    alpha : float
        Significance level of the prediction intervals (0.05 -> 95%)
    information_criterion : str
        'aic', 'aicc', 'bic' or 'hqic'

    Returns:
    --------
    tuple
        (fitted model, dict with 'forecast' table, 'order', 'aic', 'bic',
        'ljung_box_pvalue', 'candidates', 'n_obs')
    """
    print("\nBuilding ARIMA model...")

    if horizon < 1:
        raise ValueError("horizon must be a positive integer")

    series = prepare_series(df, target=target)
    print(f"Modelling {len(series)} yearly observations "
          f"({series.index.min()}-{series.index.max()})")

    model, order, candidates = grid_search_arima(series, information_criterion=information_criterion)

    forecast = model.get_forecast(steps=horizon)
    point_forecast = np.asarray(forecast.predicted_mean, dtype=float)
    conf_int = np.asarray(forecast.conf_int(alpha=alpha), dtype=float)

    # Forecast variance accumulates with the horizon; round-off in the
    # state-space recursion must not shrink a later interval.
    half_width = (conf_int[:, 1] - conf_int[:, 0]) / 2
    half_width = np.maximum.accumulate(half_width)

    last_year = int(series.index.max())
    forecast_df = pd.DataFrame({
        'year': np.arange(last_year + 1, last_year + horizon + 1),
        'forecast': point_forecast,
        'lower': point_forecast - half_width,
        'upper': point_forecast + half_width,
    })
    forecast_df['interval_width'] = forecast_df['upper'] - forecast_df['lower']

    result = {
        'forecast': forecast_df,
        'order': order,
        'aic': float(model.aic),
        'bic': float(model.bic),
        'ljung_box_pvalue': ljung_box_pvalue(model.resid, len(series)),
        'candidates': candidates,
        'n_obs': len(series),
        'confidence_level': 1 - alpha,
    }

    print(f"\nARIMA{order} forecast ({int(round((1 - alpha) * 100))}% intervals):")
    print(forecast_df.to_string(index=False))

    return model, result
