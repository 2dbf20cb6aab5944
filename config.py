"""
Coffee Price Analysis - Configuration
-------------------------------------
Project configuration. Defaults live in ``DEFAULT_CONFIG``; values can be
overridden through environment variables (or a ``.env`` file) prefixed with
``COFFEE_``.
"""

import copy
import os
from dotenv import load_dotenv

from arima_model import INFORMATION_CRITERIA
from errors import ConfigError

DEFAULT_CONFIG = {
    'data_paths': {
        'bean': 'data/coffee-prices-historical-data.csv',
        'retail': 'data/coffee-retail-prices.csv',
        'inflation': 'data/inflation-cpi.csv',
    },
    'delimiter': ',',
    'cpi_country': 'United States',
    'baseline_year': 2010,
    'forecast': {
        'horizon': 5,
        'alpha': 0.05,
        'information_criterion': 'aic',
    },
    'importance': {
        'n_estimators': 500,
        'random_state': 42,
        'n_repeats': 10,
    },
    'output': {
        'outputs_dir': 'outputs',
        'visualizations_dir': 'visualizations',
        'report_path': 'outputs/coffee_price_report.html',
        'models_dir': 'models',
    },
}

# Environment variable -> (config section or None, key, type)
ENV_OVERRIDES = {
    'COFFEE_BEAN_PATH': ('data_paths', 'bean', str),
    'COFFEE_RETAIL_PATH': ('data_paths', 'retail', str),
    'COFFEE_INFLATION_PATH': ('data_paths', 'inflation', str),
    'COFFEE_CPI_COUNTRY': (None, 'cpi_country', str),
    'COFFEE_RANDOM_STATE': ('importance', 'random_state', int),
    'COFFEE_FORECAST_HORIZON': ('forecast', 'horizon', int),
}


def load_config(env_file=None):
    """
    Build the run configuration from the defaults and the environment.

    Parameters:
    -----------
    env_file : str, optional
        Path to a .env file. When omitted python-dotenv searches for one.

    Returns:
    --------
    dict
        Configuration dictionary (a fresh copy on every call)
    """
    load_dotenv(env_file)

    config = copy.deepcopy(DEFAULT_CONFIG)

    for env_name, (section, key, cast) in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value is None or value == '':
            continue
        try:
            value = cast(value)
        except ValueError:
            print(f"Warning: Ignoring {env_name}={value!r}, expected {cast.__name__}")
            continue
        if section is None:
            config[key] = value
        else:
            config[section][key] = value

    output_dir = os.getenv('COFFEE_OUTPUT_DIR')
    if output_dir:
        config['output'] = {
            'outputs_dir': os.path.join(output_dir, 'outputs'),
            'visualizations_dir': os.path.join(output_dir, 'visualizations'),
            'report_path': os.path.join(output_dir, 'outputs', 'coffee_price_report.html'),
            'models_dir': os.path.join(output_dir, 'models'),
        }

    return config


def validate_config(config):
    """
    Check the numeric model settings before any stage runs.

    Raises:
    -------
    ConfigError
        When a setting is out of range
    """
    forecast = config['forecast']
    importance = config['importance']

    if not isinstance(forecast['horizon'], int) or forecast['horizon'] < 1:
        raise ConfigError(f"forecast horizon must be a positive integer, got {forecast['horizon']!r}")
    if not 0 < forecast['alpha'] < 1:
        raise ConfigError(f"forecast alpha must be between 0 and 1, got {forecast['alpha']!r}")
    if forecast['information_criterion'] not in INFORMATION_CRITERIA:
        raise ConfigError(
            f"information_criterion must be one of {INFORMATION_CRITERIA}, "
            f"got {forecast['information_criterion']!r}"
        )
    for key in ['n_estimators', 'n_repeats']:
        if not isinstance(importance[key], int) or importance[key] < 1:
            raise ConfigError(f"importance {key} must be a positive integer, got {importance[key]!r}")

    return config
