"""
Coffee Price Analysis - Report
------------------------------
Renders the analysis as a single HTML document: data overview, plots and
the three model summaries. Tables are produced with DataFrame.to_html.
"""

import os
import html
from datetime import datetime

import pandas as pd

STYLE = """
body { font-family: sans-serif; max-width: 1000px; margin: 2em auto; color: #222; }
table { border-collapse: collapse; margin: 1em 0; }
th, td { border: 1px solid #ccc; padding: 4px 8px; text-align: right; }
th { background: #f2f2f2; }
img { max-width: 100%; }
.note { color: #555; font-size: 0.9em; }
"""


def _table(df, index=True, float_format='{:.4f}'.format):
    return df.to_html(index=index, float_format=float_format, border=0)


def _image(path, report_dir, alt):
    src = os.path.relpath(path, report_dir) if report_dir else path
    return f'<img src="{html.escape(src)}" alt="{html.escape(alt)}">'


def _overview_section(combined_df, analysis):
    years = f"{combined_df['year'].min()}-{combined_df['year'].max()}"
    parts = [
        '<h2>Data overview</h2>',
        f'<p>The merged dataset covers {len(combined_df)} years ({years}) present in all three sources.</p>',
        _table(combined_df, index=False),
    ]
    if analysis is not None:
        parts.append('<h3>Summary statistics</h3>')
        parts.append(_table(analysis['summary']))
    return '\n'.join(parts)


def _plot_section(plots, report_dir):
    titles = {
        'bean_vs_retail': 'Bean vs retail prices',
        'real_retail_price': 'Inflation-adjusted retail price',
        'markup_ratio': 'Markup ratio',
        'correlation': 'Correlation matrix',
    }
    parts = ['<h2>Price trends</h2>']
    for name, path in plots.items():
        if name not in titles:
            continue
        parts.append(f'<h3>{titles[name]}</h3>')
        parts.append(_image(path, report_dir, titles[name]))
    return '\n'.join(parts)


def _regression_section(summary):
    bp = summary.get('bp_pvalue')
    bp_text = 'not available' if bp is None or pd.isna(bp) else f'{bp:.4f}'
    return '\n'.join([
        '<h2>Linear regression</h2>',
        '<p>retail_price_usd ~ bean_price_usd_per_lb + cpi_2010</p>',
        _table(summary['coefficients']),
        f"<p>R&sup2; = {summary['r_squared']:.4f}, adjusted R&sup2; = {summary['adj_r_squared']:.4f}, "
        f"n = {summary['n_obs']}</p>",
        f'<p class="note">Breusch-Pagan p-value: {bp_text}</p>',
    ])


def _forecast_section(result, plot_path, report_dir):
    level = int(round(result['confidence_level'] * 100))
    lb = result['ljung_box_pvalue']
    lb_text = 'not available' if pd.isna(lb) else f'{lb:.4f}'
    parts = [
        '<h2>Bean price forecast</h2>',
        f"<p>ARIMA{result['order']} selected on {result['n_obs']} yearly observations "
        f"(AIC {result['aic']:.2f}, BIC {result['bic']:.2f}). "
        f"Intervals are {level}% prediction intervals.</p>",
        _table(result['forecast'], index=False),
        f'<p class="note">Ljung-Box residual p-value: {lb_text}</p>',
    ]
    if plot_path:
        parts.append(_image(plot_path, report_dir, 'Bean price forecast'))
    return '\n'.join(parts)


def _importance_section(importance_df, plot_path, report_dir):
    parts = [
        '<h2>Feature importance</h2>',
        '<p>Random forest predicting retail_price_usd. Ranked by permutation importance, '
        'the increase in MSE when a feature is shuffled (floored at 0). '
        'The relative order is the interpretable output, not the magnitudes.</p>',
        _table(importance_df, index=False),
    ]
    if plot_path:
        parts.append(_image(plot_path, report_dir, 'Feature importance'))
    return '\n'.join(parts)


def render_report(combined_df, plots, output_path, regression=None, forecast=None,
                  importance=None, analysis=None):
    """
    Write the HTML report.

    Parameters:
    -----------
    combined_df : pd.DataFrame
        Merged yearly dataset
    plots : dict
        Plot name -> PNG path (see visualization.create_report_plots)
    output_path : str
        Report file to write
    regression : dict, optional
        Summary from regression_model.fit_regression_model
    forecast : dict, optional
        Result from arima_model.build_arima_model
    importance : pd.DataFrame, optional
        Ranking from feature_importance.compute_feature_importance
    analysis : dict, optional
        Output of data_analysis.analyze_combined

    Returns:
    --------
    str
        Path of the written report
    """
    print(f"\nRendering report to {output_path}...")

    report_dir = os.path.dirname(os.path.abspath(output_path))
    abs_plots = {name: os.path.abspath(path) for name, path in plots.items()}

    sections = [
        _overview_section(combined_df, analysis),
        _plot_section(abs_plots, report_dir),
    ]
    if regression is not None:
        sections.append(_regression_section(regression))
    if forecast is not None:
        sections.append(_forecast_section(forecast, abs_plots.get('forecast'), report_dir))
    if importance is not None:
        sections.append(_importance_section(importance, abs_plots.get('importance'), report_dir))

    document = '\n'.join([
        '<!DOCTYPE html>',
        '<html><head><meta charset="utf-8">',
        '<title>Coffee Price Analysis</title>',
        f'<style>{STYLE}</style>',
        '</head><body>',
        '<h1>Coffee Price Analysis</h1>',
        f'<p class="note">Generated {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}</p>',
        *sections,
        '</body></html>',
    ])

    os.makedirs(report_dir, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(document)

    print(f"Report saved to {output_path}")
    return output_path
