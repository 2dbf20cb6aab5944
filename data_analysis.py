"""
Coffee Price Analysis - Descriptive Analysis
--------------------------------------------
Summary statistics and correlations of the combined yearly dataset.
"""

import pandas as pd
import numpy as np
from typing import Dict


def summarize_combined(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per-column summary statistics of the combined dataset.

    Parameters:
    -----------
    df : pd.DataFrame
        Combined dataset

    Returns:
    --------
    pd.DataFrame
        One row per numeric column with count, mean, std, min and max
    """
    numeric = df.drop(columns=['year'], errors='ignore').select_dtypes(include=[np.number])
    summary = numeric.agg(['count', 'mean', 'std', 'min', 'max']).T
    summary['count'] = summary['count'].astype(int)
    summary.index.name = 'variable'
    return summary


def correlation_matrix(df: pd.DataFrame) -> pd.DataFrame:
    """Pearson correlations between the numeric columns (year excluded)."""
    numeric = df.drop(columns=['year'], errors='ignore').select_dtypes(include=[np.number])
    return numeric.corr()


def analyze_combined(df: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    """
    Print and return the descriptive analysis of the combined dataset.
    """
    print("\nAnalyzing combined dataset...")

    summary = summarize_combined(df)
    corr = correlation_matrix(df)

    print("\nSummary statistics:")
    print(summary.round(3))

    if 'bean_price_usd_per_lb' in corr.columns and 'retail_price_usd' in corr.index:
        print(f"\nBean vs retail price correlation: "
              f"{corr.loc['retail_price_usd', 'bean_price_usd_per_lb']:.3f}")

    return {
        'summary': summary,
        'correlation': corr,
    }
