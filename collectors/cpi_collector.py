# collectors/cpi_collector.py

import pandas as pd

from errors import RebaseError

CPI_COLUMNS = ('country', 'year', 'cpi_index')


def clean_cpi(df, country="United States", baseline_year=2010):
    """
    Filters the CPI table to one country and rebases it to baseline_year = 100.

    Parameters:
    -----------
    df : DataFrame
        Raw CPI data with country, year and cpi_index columns
    country : str
        Country to keep
    baseline_year : int
        Year whose index value becomes 100

    Returns:
    --------
    DataFrame containing the rebased CPI with year and cpi_2010 columns
    """
    cpi_df = df.loc[df['country'] == country, list(CPI_COLUMNS)].copy()
    if cpi_df.empty:
        raise RebaseError(f"No CPI rows for country '{country}'; cannot rebase to {baseline_year}")

    cpi_df['year'] = pd.to_numeric(cpi_df['year'], errors='coerce')
    cpi_df['cpi_index'] = pd.to_numeric(cpi_df['cpi_index'], errors='coerce')
    cpi_df = cpi_df.dropna(subset=['year'])
    cpi_df['year'] = cpi_df['year'].astype(int)

    duplicates = cpi_df['year'].duplicated().sum()
    if duplicates > 0:
        print(f"Warning: {duplicates} duplicate CPI years for {country}, keeping the first of each")
        cpi_df = cpi_df.drop_duplicates(subset='year', keep='first')

    baseline = cpi_df.loc[cpi_df['year'] == baseline_year, 'cpi_index']
    if baseline.empty:
        raise RebaseError(f"No {baseline_year} CPI row for '{country}'")

    base_value = baseline.iloc[0]
    if pd.isna(base_value) or base_value == 0:
        raise RebaseError(f"CPI value for '{country}' in {baseline_year} is {base_value}; cannot rebase")

    cpi_df['cpi_2010'] = cpi_df['cpi_index'] / base_value * 100
    cpi_df = cpi_df.dropna(subset=['cpi_2010'])
    cpi_df = cpi_df.sort_values('year').reset_index(drop=True)

    print(f"Rebased CPI for {country} to {baseline_year} = 100 "
          f"({cpi_df['year'].min()}-{cpi_df['year'].max()})")
    return cpi_df[['year', 'cpi_2010']]
