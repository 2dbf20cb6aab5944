"""
Coffee Price Analysis - Data Preparation
----------------------------------------
This module loads the three raw sources (bean prices, retail prices, CPI),
hands each one to its collector for cleaning and merges the cleaned tables
into a single yearly dataset with the derived price metrics.
"""

import pandas as pd
import numpy as np
import os
from typing import Dict, Iterable, Optional
from pathlib import Path

from collectors.bean_price_collector import BEAN_COLUMNS, clean_bean_prices
from collectors.retail_price_collector import RETAIL_COLUMNS, clean_retail_prices
from collectors.cpi_collector import CPI_COLUMNS, clean_cpi
from errors import MissingFileError, ParseError, JoinEmptyError, ZeroBeanPriceError

SOURCE_SCHEMAS = {
    'bean': BEAN_COLUMNS,
    'retail': RETAIL_COLUMNS,
    'inflation': CPI_COLUMNS,
}

COMBINED_COLUMNS = [
    'year',
    'retail_price_usd',
    'bean_price_usd_per_lb',
    'cpi_2010',
    'real_retail_price',
    'markup_ratio',
]


def load_table(file_path, required_columns: Iterable[str] = (), delimiter: str = ',') -> pd.DataFrame:
    """
    Read a delimited file into a DataFrame.

    Parameters:
    -----------
    file_path : str or Path
        Path to the file
    required_columns : Iterable[str]
        Columns the file must contain
    delimiter : str
        Field separator

    Returns:
    --------
    pd.DataFrame
        Table with the file's column names and inferred types
    """
    path = Path(file_path)
    if not path.exists():
        raise MissingFileError(f"File not found: {path}")

    try:
        df = pd.read_csv(path, sep=delimiter)
    except pd.errors.EmptyDataError:
        raise ParseError(f"File is empty: {path}")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ParseError(f"Malformed rows in {path}: {e}")

    missing = [col for col in required_columns if col not in df.columns]
    if missing:
        raise ParseError(f"Missing required columns in {path}: {', '.join(missing)}")

    return df


def load_raw_data(data_paths: Dict[str, str], delimiter: str = ',') -> Dict[str, pd.DataFrame]:
    """
    Load the raw bean, retail and inflation sources.

    Parameters:
    -----------
    data_paths : Dict[str, str]
        Dictionary mapping source name ('bean', 'retail', 'inflation') to file path
    delimiter : str
        Field separator shared by the files

    Returns:
    --------
    Dict[str, pd.DataFrame]
        Dictionary of loaded dataframes
    """
    print("Loading raw data sources...")

    data_sources = {}

    for source_name, required in SOURCE_SCHEMAS.items():
        if source_name not in data_paths:
            raise MissingFileError(f"No path configured for source '{source_name}'")

        df = load_table(data_paths[source_name], required_columns=required, delimiter=delimiter)
        print(f"Loaded {source_name}: {df.shape[0]} rows, {df.shape[1]} columns")
        data_sources[source_name] = df

    return data_sources


def add_derived_metrics(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add the inflation-adjusted retail price and the retail/bean markup ratio.

    Parameters:
    -----------
    df : pd.DataFrame
        Table with retail_price_usd, bean_price_usd_per_lb and cpi_2010

    Returns:
    --------
    pd.DataFrame
        New table with real_retail_price and markup_ratio columns
    """
    zero_bean = df.loc[df['bean_price_usd_per_lb'] == 0, 'year']
    if not zero_bean.empty:
        years = ', '.join(str(int(y)) for y in zero_bean)
        raise ZeroBeanPriceError(f"Bean price is zero for year(s) {years}; markup ratio is undefined")

    derived = df.copy()
    derived['real_retail_price'] = derived['retail_price_usd'] / (derived['cpi_2010'] / 100)
    derived['markup_ratio'] = derived['retail_price_usd'] / derived['bean_price_usd_per_lb']
    return derived


def merge_data_sources(bean_df: pd.DataFrame, retail_df: pd.DataFrame, cpi_df: pd.DataFrame) -> pd.DataFrame:
    """
    Merge the cleaned sources into one row per year.

    Retail prices are averaged across countries, then joined with the bean
    and CPI tables. Only years present in all three sources are kept.

    Parameters:
    -----------
    bean_df : pd.DataFrame
        Cleaned bean prices (year, bean_price_usd_per_lb)
    retail_df : pd.DataFrame
        Cleaned retail prices (country, year, price_usd_per_lb)
    cpi_df : pd.DataFrame
        Rebased CPI (year, cpi_2010)

    Returns:
    --------
    pd.DataFrame
        Combined dataset with derived metrics
    """
    print("Merging data sources...")

    retail_by_year = (
        retail_df.groupby('year', as_index=False)['price_usd_per_lb']
        .mean()
        .rename(columns={'price_usd_per_lb': 'retail_price_usd'})
    )
    print(f"Averaged retail prices across countries: {len(retail_by_year)} years")

    merged_df = retail_by_year.merge(bean_df[['year', 'bean_price_usd_per_lb']], on='year', how='inner')
    merged_df = merged_df.merge(cpi_df[['year', 'cpi_2010']], on='year', how='inner')

    if merged_df.empty:
        raise JoinEmptyError(
            "No common years between sources "
            f"(retail: {_year_span(retail_by_year)}, bean: {_year_span(bean_df)}, cpi: {_year_span(cpi_df)})"
        )

    merged_df = merged_df.sort_values('year').reset_index(drop=True)
    merged_df['year'] = merged_df['year'].astype(int)
    merged_df = add_derived_metrics(merged_df)

    print(f"Final merged dataset: {merged_df.shape[0]} rows "
          f"({merged_df['year'].min()}-{merged_df['year'].max()})")

    return merged_df[COMBINED_COLUMNS]


def _year_span(df):
    if df.empty:
        return 'none'
    return f"{int(df['year'].min())}-{int(df['year'].max())}"


def prepare_data(data_paths: Dict[str, str],
                 cpi_country: str = 'United States',
                 baseline_year: int = 2010,
                 delimiter: str = ',',
                 output_path: Optional[str] = None) -> Dict[str, pd.DataFrame]:
    """
    Run the complete data preparation pipeline: load, clean and merge.

    Parameters:
    -----------
    data_paths : Dict[str, str]
        Dictionary mapping source name to file path
    cpi_country : str
        Country whose CPI deflates the retail prices
    baseline_year : int
        Year whose CPI value is rebased to 100
    delimiter : str
        Field separator of the input files
    output_path : str, optional
        Where to save the combined dataset as CSV

    Returns:
    --------
    Dict[str, pd.DataFrame]
        The cleaned 'bean', 'retail' and 'cpi' tables and the 'combined' table
    """
    print("\n" + "="*80)
    print("COFFEE PRICE ANALYSIS - DATA PREPARATION")
    print("="*80 + "\n")

    # 1. Load raw data
    raw_data = load_raw_data(data_paths, delimiter=delimiter)

    # 2. Clean each source
    bean_df = clean_bean_prices(raw_data['bean'])
    retail_df = clean_retail_prices(raw_data['retail'])
    cpi_df = clean_cpi(raw_data['inflation'], country=cpi_country, baseline_year=baseline_year)

    # 3. Merge
    combined_df = merge_data_sources(bean_df, retail_df, cpi_df)

    # 4. Save combined dataset
    if output_path:
        os.makedirs(os.path.dirname(output_path) or '.', exist_ok=True)
        combined_df.to_csv(output_path, index=False)
        print(f"Saved combined dataset to {output_path}")

    if np.isinf(combined_df[['real_retail_price', 'markup_ratio']].values).any():
        print("Warning: Infinite values in derived metrics")

    return {
        'bean': bean_df,
        'retail': retail_df,
        'cpi': cpi_df,
        'combined': combined_df,
    }
