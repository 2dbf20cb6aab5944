# collectors/bean_price_collector.py

import pandas as pd

BEAN_COLUMNS = ('months', 'ICO composite indicator')


def clean_bean_prices(df):
    """
    Turns monthly ICO composite indicator prices into annual means.

    Parameters:
    -----------
    df : DataFrame
        Raw bean prices with 'months' ("M/YYYY") and 'ICO composite indicator' columns

    Returns:
    --------
    DataFrame with one row per year: year, bean_price_usd_per_lb
    """
    bean_df = df[list(BEAN_COLUMNS)].copy()

    # Split "M/YYYY" into month and year
    parts = bean_df['months'].astype(str).str.extract(r'^\s*(\d{1,2})\s*/\s*(\d{4})\s*$')
    bean_df['month'] = pd.to_numeric(parts[0], errors='coerce')
    bean_df['year'] = pd.to_numeric(parts[1], errors='coerce')
    bean_df['price'] = pd.to_numeric(bean_df['ICO composite indicator'], errors='coerce')

    bad_years = bean_df['year'].isna().sum()
    if bad_years > 0:
        print(f"Warning: Dropping {bad_years} bean price rows with unparseable year")
        bean_df = bean_df.dropna(subset=['year'])

    annual = (
        bean_df.groupby('year', as_index=False)['price']
        .mean()
        .rename(columns={'price': 'bean_price_usd_per_lb'})
    )

    # A year with no valid observation has no mean
    empty_years = annual['bean_price_usd_per_lb'].isna().sum()
    if empty_years > 0:
        print(f"Warning: Dropping {empty_years} years with no bean price observations")
        annual = annual.dropna(subset=['bean_price_usd_per_lb'])

    annual['year'] = annual['year'].astype(int)
    annual = annual.sort_values('year').reset_index(drop=True)

    print(f"Cleaned bean prices: {len(annual)} years")
    return annual
