"""
Coffee Price Analysis - Feature Importance
------------------------------------------
Random forest ranking of what drives the average retail price: the bean
price, the CPI and the year. Two measures are reported per predictor:
the increase in mean squared error when the predictor is permuted, and
the accumulated impurity reduction across the trees.
"""

import pandas as pd
import numpy as np
from sklearn.ensemble import RandomForestRegressor
from sklearn.inspection import permutation_importance
import warnings
warnings.filterwarnings('ignore')

from errors import InsufficientDataError

TARGET = 'retail_price_usd'
FEATURES = ['bean_price_usd_per_lb', 'cpi_2010', 'year']


def compute_feature_importance(df, target=TARGET, features=FEATURES,
                               n_estimators=500, random_state=42, n_repeats=10):
    """
    Fit a random forest and rank the predictors.

    Parameters:
    -----------
    df : pd.DataFrame
        Combined dataset
    target : str
        Column to predict
    features : list
        Predictor columns
    n_estimators : int
        Number of trees
    random_state : int
        Seed for bootstrap sampling, split selection and permutations
    n_repeats : int
        Permutations per feature

    Returns:
    --------
    tuple
        (fitted RandomForestRegressor, importance DataFrame ranked by
        permutation importance)
    """
    print("\nAnalyzing feature importance...")

    data = df[list(features) + [target]].dropna()
    if len(data) < 2:
        raise InsufficientDataError(
            f"Random forest needs at least 2 complete rows, got {len(data)}"
        )

    X = data[list(features)].astype(float)
    y = data[target].astype(float)

    print(f"Training Random Forest ({n_estimators} trees, seed {random_state}) on {len(data)} rows...")
    rf = RandomForestRegressor(
        n_estimators=n_estimators,
        bootstrap=True,
        random_state=random_state
    )
    rf.fit(X, y)

    permutation = permutation_importance(
        rf, X, y,
        scoring='neg_mean_squared_error',
        n_repeats=n_repeats,
        random_state=random_state
    )

    # A permuted feature that lowers the error by chance contributes nothing
    importance_df = pd.DataFrame({
        'feature': list(features),
        'permutation_importance': np.clip(permutation.importances_mean, 0, None),
        'permutation_std': permutation.importances_std,
        'impurity_importance': rf.feature_importances_,
    })

    importance_df = importance_df.sort_values(
        ['permutation_importance', 'impurity_importance'],
        ascending=False,
        kind='mergesort'
    ).reset_index(drop=True)
    importance_df['rank'] = np.arange(1, len(importance_df) + 1)

    print("\nFeature ranking:")
    for _, row in importance_df.iterrows():
        print(f"{row['rank']}. {row['feature']} "
              f"(MSE increase: {row['permutation_importance']:.4f}, "
              f"impurity: {row['impurity_importance']:.4f})")

    return rf, importance_df
