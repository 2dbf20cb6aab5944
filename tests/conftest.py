"""Pytest configuration and fixtures for the coffee price analysis tests.

Fixtures write small input files in the three source layouts to tmp_path.
"""

from __future__ import annotations

import copy
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from config import DEFAULT_CONFIG


def bean_price_for(year: int) -> float:
    """Deterministic annual bean price level used by the fixtures."""
    return 1.0 + 0.05 * (year - 2000) + 0.2 * np.sin(year)


def cpi_for(year: int) -> float:
    """Raw CPI index around 218.0 in 2010; write_cpi_csv pins 2010 to exactly 218.0."""
    return 218.0 * (1.02 ** (year - 2010)) + 0.8 * np.cos(year)


def write_bean_csv(path: Path, years) -> Path:
    rows = []
    for year in years:
        for month in range(1, 13):
            rows.append({
                'months': f"{month}/{year}",
                'ICO composite indicator': bean_price_for(year) + 0.01 * (month - 6.5),
            })
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def write_retail_csv(path: Path, years, countries=("United States", "Germany")) -> Path:
    rows = []
    for offset, country in enumerate(countries):
        row = {'retail_prices': country}
        for year in years:
            row[str(year)] = 2 * bean_price_for(year) + 0.05 * cpi_for(year) / 2.18 + offset * 0.5
        rows.append(row)
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def write_cpi_csv(path: Path, years, country="United States", include_baseline=True) -> Path:
    rows = []
    for year in years:
        if year == 2010 and not include_baseline:
            continue
        value = 218.0 if year == 2010 else cpi_for(year)
        rows.append({'country': country, 'year': year, 'cpi_index': value})
        rows.append({'country': 'Brazil', 'year': year, 'cpi_index': value * 1.5})
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


@pytest.fixture
def make_inputs(tmp_path: Path):
    """Factory writing the three input files and returning a data_paths dict."""

    def _make(bean_years=range(2015, 2021), retail_years=range(2015, 2021),
              cpi_years=range(2010, 2021), include_baseline=True):
        return {
            'bean': str(write_bean_csv(tmp_path / 'bean.csv', bean_years)),
            'retail': str(write_retail_csv(tmp_path / 'retail.csv', retail_years)),
            'inflation': str(write_cpi_csv(tmp_path / 'cpi.csv', cpi_years,
                                           include_baseline=include_baseline)),
        }

    return _make


@pytest.fixture
def make_config(tmp_path: Path):
    """Factory building a pipeline configuration rooted in tmp_path."""

    def _make(data_paths):
        config = copy.deepcopy(DEFAULT_CONFIG)
        config['data_paths'] = data_paths
        config['importance']['n_estimators'] = 50
        config['importance']['n_repeats'] = 5
        config['output'] = {
            'outputs_dir': str(tmp_path / 'outputs'),
            'visualizations_dir': str(tmp_path / 'visualizations'),
            'report_path': str(tmp_path / 'outputs' / 'report.html'),
            'models_dir': str(tmp_path / 'models'),
        }
        return config

    return _make


@pytest.fixture
def combined_df() -> pd.DataFrame:
    """A merged table as produced by data_preparation.merge_data_sources."""
    years = np.arange(2011, 2021)
    bean = np.array([bean_price_for(y) for y in years])
    cpi = np.array([cpi_for(y) / 2.18 for y in years])
    retail = 2 * bean + 0.05 * cpi + 0.25
    return pd.DataFrame({
        'year': years,
        'retail_price_usd': retail,
        'bean_price_usd_per_lb': bean,
        'cpi_2010': cpi,
        'real_retail_price': retail / (cpi / 100),
        'markup_ratio': retail / bean,
    })


@pytest.fixture
def bean_series_df() -> pd.DataFrame:
    """Thirty years of annual bean prices following a seeded random walk."""
    rng = np.random.default_rng(7)
    years = np.arange(1990, 2020)
    prices = 1.2 + np.cumsum(rng.normal(0, 0.1, size=len(years)))
    return pd.DataFrame({'year': years, 'bean_price_usd_per_lb': prices})
