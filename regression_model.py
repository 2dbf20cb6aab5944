"""
Coffee Price Analysis - Linear Regression
-----------------------------------------
Ordinary least squares model of the average retail coffee price on the
wholesale bean price and the rebased CPI:

    retail_price_usd ~ bean_price_usd_per_lb + cpi_2010
"""

import pandas as pd
import numpy as np
import statsmodels.api as sm
from statsmodels.stats.diagnostic import het_breuschpagan
import warnings
warnings.filterwarnings('ignore')

from errors import SingularMatrixError

TARGET = 'retail_price_usd'
PREDICTORS = ['bean_price_usd_per_lb', 'cpi_2010']


def fit_regression_model(df, target=TARGET, predictors=PREDICTORS):
    """
    Fit the OLS regression on the combined dataset.

    Parameters:
    -----------
    df : pd.DataFrame
        Combined dataset (one row per year)
    target : str
        Dependent variable
    predictors : list
        Explanatory variables

    Returns:
    --------
    tuple
        (fitted statsmodels results, summary dict with 'coefficients',
        'r_squared', 'adj_r_squared', 'n_obs' and 'bp_pvalue')
    """
    print("\nFitting linear regression model...")

    data = df[[target] + list(predictors)].dropna()
    y = data[target].astype(float)
    X = sm.add_constant(data[list(predictors)].astype(float), has_constant='add')

    rank = np.linalg.matrix_rank(X.values) if len(X) else 0
    if rank < X.shape[1]:
        raise SingularMatrixError(
            f"Design matrix has rank {rank} but {X.shape[1]} columns "
            f"({len(data)} observations); regression is underdetermined"
        )

    model = sm.OLS(y, X).fit()

    coefficients = pd.DataFrame({
        'coef': model.params,
        'std_err': model.bse,
        't_value': model.tvalues,
        'p_value': model.pvalues,
    })
    coefficients.index.name = 'term'

    # Breusch-Pagan test for heteroskedasticity needs residual degrees of freedom
    bp_pvalue = np.nan
    if model.df_resid > 0:
        try:
            bp_pvalue = het_breuschpagan(model.resid, X)[1]
        except (ValueError, np.linalg.LinAlgError) as e:
            print(f"Warning: Breusch-Pagan test failed: {e}")

    summary = {
        'coefficients': coefficients,
        'r_squared': float(model.rsquared),
        'adj_r_squared': float(model.rsquared_adj),
        'n_obs': int(model.nobs),
        'bp_pvalue': float(bp_pvalue),
    }

    print("\nRegression coefficients:")
    print(coefficients)
    print(f"R-squared: {summary['r_squared']:.4f}  Adjusted R-squared: {summary['adj_r_squared']:.4f}")

    return model, summary
