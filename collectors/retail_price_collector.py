# collectors/retail_price_collector.py

import pandas as pd

RETAIL_COLUMNS = ('retail_prices',)


def clean_retail_prices(df):
    """
    Reshapes the wide country x year retail price table into long format.

    Parameters:
    -----------
    df : DataFrame
        Raw retail prices: a 'retail_prices' column of country names followed
        by one column per year

    Returns:
    --------
    DataFrame with columns country, year, price_usd_per_lb
    """
    retail_df = df.rename(columns={'retail_prices': 'country'})

    year_columns = [col for col in retail_df.columns if col != 'country']
    long_df = retail_df.melt(
        id_vars='country',
        value_vars=year_columns,
        var_name='year',
        value_name='price_usd_per_lb'
    )

    long_df['year'] = pd.to_numeric(long_df['year'].astype(str).str.strip(), errors='coerce')
    if long_df['year'].isna().any():
        print("Warning: Ignoring retail columns that are not years")
        long_df = long_df.dropna(subset=['year'])

    long_df['price_usd_per_lb'] = pd.to_numeric(long_df['price_usd_per_lb'], errors='coerce')
    missing_prices = long_df['price_usd_per_lb'].isna().sum()
    if missing_prices > 0:
        print(f"Dropping {missing_prices} missing retail prices")
        long_df = long_df.dropna(subset=['price_usd_per_lb'])

    long_df['year'] = long_df['year'].astype(int)
    long_df = long_df.sort_values(['country', 'year']).reset_index(drop=True)

    print(f"Cleaned retail prices: {long_df['country'].nunique()} countries, "
          f"{long_df['year'].nunique()} years")
    return long_df[['country', 'year', 'price_usd_per_lb']]
