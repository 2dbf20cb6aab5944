"""
Coffee Price Analysis - Visualizations
--------------------------------------
Plots for the report. Every function saves a PNG under `output_dir` and
returns its path.
"""

import os
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

sns.set_style('whitegrid')


def _save(fig, output_dir, filename):
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)
    print(f"Saved plot to {path}")
    return path


def plot_bean_vs_retail(df, output_dir='visualizations'):
    """
    Bean (wholesale) and average retail price per year on a shared axis.
    """
    fig, ax = plt.subplots(figsize=(12, 6))
    ax.plot(df['year'], df['retail_price_usd'], marker='o', label='Retail price (USD/lb)')
    ax.plot(df['year'], df['bean_price_usd_per_lb'], marker='o', label='Bean price (USD/lb)')
    ax.set_title('Coffee Bean vs Retail Prices')
    ax.set_xlabel('Year')
    ax.set_ylabel('USD per lb')
    ax.legend()
    return _save(fig, output_dir, 'bean_vs_retail_prices.png')


def plot_real_retail_price(df, output_dir='visualizations'):
    """
    Retail price adjusted for inflation (2010 dollars), with the nominal price for reference.
    """
    fig, ax = plt.subplots(figsize=(12, 6))
    ax.plot(df['year'], df['real_retail_price'], marker='o', label='Real retail price (2010 USD)')
    ax.plot(df['year'], df['retail_price_usd'], linestyle='--', alpha=0.7, label='Nominal retail price')
    ax.set_title('Inflation-Adjusted Retail Coffee Price')
    ax.set_xlabel('Year')
    ax.set_ylabel('USD per lb')
    ax.legend()
    return _save(fig, output_dir, 'real_retail_price.png')


def plot_markup_ratio(df, output_dir='visualizations'):
    """
    Retail price divided by bean price per year.
    """
    fig, ax = plt.subplots(figsize=(12, 6))
    ax.plot(df['year'], df['markup_ratio'], marker='o', color='tab:purple')
    ax.axhline(y=df['markup_ratio'].mean(), color='r', linestyle='--', alpha=0.6,
               label=f"Mean ({df['markup_ratio'].mean():.2f})")
    ax.set_title('Retail Markup Ratio over Bean Price')
    ax.set_xlabel('Year')
    ax.set_ylabel('Retail / bean price')
    ax.legend()
    return _save(fig, output_dir, 'markup_ratio.png')


def plot_forecast(history_df, forecast_df, target='bean_price_usd_per_lb', output_dir='visualizations'):
    """
    Historical series followed by the ARIMA forecast and its interval band.
    """
    fig, ax = plt.subplots(figsize=(12, 6))
    ax.plot(history_df['year'], history_df[target], marker='o', label='Observed')
    ax.plot(forecast_df['year'], forecast_df['forecast'], marker='o', color='red',
            linestyle='--', label='Forecast')
    ax.fill_between(forecast_df['year'], forecast_df['lower'], forecast_df['upper'],
                    color='red', alpha=0.2, label='Prediction interval')
    ax.set_title('ARIMA Forecast of Coffee Bean Prices')
    ax.set_xlabel('Year')
    ax.set_ylabel('USD per lb')
    ax.legend()
    return _save(fig, output_dir, 'bean_price_forecast.png')


def plot_feature_importance(importance_df, output_dir='visualizations'):
    """
    Side-by-side bars of permutation and impurity importance.
    """
    fig, axes = plt.subplots(1, 2, figsize=(12, 5))
    sns.barplot(x='permutation_importance', y='feature', data=importance_df, ax=axes[0])
    axes[0].set_title('Permutation importance (MSE increase)')
    sns.barplot(x='impurity_importance', y='feature', data=importance_df, ax=axes[1])
    axes[1].set_title('Impurity importance')
    return _save(fig, output_dir, 'feature_importance.png')


def plot_correlation_matrix(corr, output_dir='visualizations'):
    """
    Lower-triangle heatmap of the correlation matrix.
    """
    fig, ax = plt.subplots(figsize=(8, 7))
    mask = np.triu(np.ones_like(corr, dtype=bool), k=1)
    sns.heatmap(corr, mask=mask, cmap='coolwarm', annot=True, fmt='.2f', center=0, ax=ax)
    ax.set_title('Correlation Matrix')
    return _save(fig, output_dir, 'correlation_matrix.png')


def create_report_plots(combined_df, output_dir='visualizations'):
    """
    Create the three time-series plots of the combined dataset.

    Returns:
    --------
    dict
        Plot name -> file path
    """
    print("\nCreating report plots...")
    return {
        'bean_vs_retail': plot_bean_vs_retail(combined_df, output_dir),
        'real_retail_price': plot_real_retail_price(combined_df, output_dir),
        'markup_ratio': plot_markup_ratio(combined_df, output_dir),
    }
