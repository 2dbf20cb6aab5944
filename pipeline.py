"""
Coffee Price Analysis - Pipeline
--------------------------------
Runs the complete analysis: load and clean the three sources, merge them by
year, fit the regression, forecast and feature-importance models, and render
the report.
"""

import os
import sys
import time
import json
from datetime import datetime

import joblib

# Import project modules
import data_preparation
import data_analysis
import regression_model
import arima_model
import feature_importance
import visualization
import report
from config import load_config, validate_config
from errors import CoffeeAnalysisError, StageFailedError

MODEL_STEPS = ['regression', 'forecast', 'importance']


def create_output_directories(config):
    """Create necessary output directories."""
    output = config['output']
    for directory in [output['outputs_dir'], output['visualizations_dir'], output['models_dir']]:
        os.makedirs(directory, exist_ok=True)


def write_pipeline_record(config, record):
    """Save the run record as JSON in the outputs directory."""
    path = os.path.join(config['output']['outputs_dir'], 'pipeline_record.json')
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w') as f:
        json.dump(record, f, indent=2)
    return path


def _record_failure(config, steps, start_time, stage, message):
    write_pipeline_record(config, {
        'timestamp': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        'steps_requested': steps,
        'execution_time_seconds': time.time() - start_time,
        'status': 'failed',
        'failed_stage': stage,
        'error': message,
    })


def _run_stage(stage, func, *args, **kwargs):
    try:
        return func(*args, **kwargs)
    except CoffeeAnalysisError as e:
        e.stage = stage
        raise


def run_pipeline(steps=None, config=None):
    """
    Run the complete pipeline or a subset of the model steps.

    Data preparation and report rendering always run.

    Parameters:
    -----------
    steps : list of str or None
        Model steps to run ('regression', 'forecast', 'importance'), or None for all
    config : dict or None
        Configuration, defaults to config.load_config()

    Returns:
    --------
    dict
        Everything the run produced: 'data', 'analysis', 'regression',
        'forecast', 'importance', 'plots', 'report_path', 'record'
    """
    start_time = time.time()
    config = config or load_config()

    if steps is None:
        steps = list(MODEL_STEPS)
    for step in steps:
        if step not in MODEL_STEPS:
            print(f"Warning: Unknown step '{step}'. Skipping.")
    steps = [step for step in MODEL_STEPS if step in steps]

    create_output_directories(config)
    output = config['output']
    viz_dir = output['visualizations_dir']

    print("=" * 80)
    print("COFFEE PRICE ANALYSIS - PIPELINE")
    print("=" * 80)
    print(f"Running model steps: {', '.join(steps) if steps else 'none'}")
    print("-" * 80)

    results = {'regression': None, 'forecast': None, 'importance': None}
    stage = 'configuration'

    try:
        _run_stage(stage, validate_config, config)

        # Step 1: Load, clean and merge
        stage = 'data_preparation'
        print("\nSTEP 1: DATA PREPARATION")
        data = _run_stage(
            stage, data_preparation.prepare_data,
            config['data_paths'],
            cpi_country=config['cpi_country'],
            baseline_year=config['baseline_year'],
            delimiter=config['delimiter'],
            output_path=os.path.join(output['outputs_dir'], 'combined_dataset.csv'),
        )
        combined_df = data['combined']

        stage = 'analysis'
        print("\nSTEP 2: DESCRIPTIVE ANALYSIS")
        analysis = data_analysis.analyze_combined(combined_df)
        plots = visualization.create_report_plots(combined_df, viz_dir)
        plots['correlation'] = visualization.plot_correlation_matrix(analysis['correlation'], viz_dir)

        # Step 3: Models. Each one only reads the prepared tables.
        if 'regression' in steps:
            stage = 'regression'
            print("\nSTEP 3: LINEAR REGRESSION")
            model, summary = _run_stage(stage, regression_model.fit_regression_model, combined_df)
            joblib.dump(model, os.path.join(output['models_dir'], 'regression_model.pkl'))
            results['regression'] = summary

        if 'forecast' in steps:
            stage = 'forecast'
            print("\nSTEP 4: ARIMA FORECAST")
            forecast_cfg = config['forecast']
            model, forecast = _run_stage(
                stage, arima_model.build_arima_model,
                data['bean'],
                horizon=forecast_cfg['horizon'],
                alpha=forecast_cfg['alpha'],
                information_criterion=forecast_cfg['information_criterion'],
            )
            joblib.dump(model, os.path.join(output['models_dir'], 'arima_model.pkl'))
            forecast['forecast'].to_csv(os.path.join(output['outputs_dir'], 'bean_price_forecast.csv'), index=False)
            plots['forecast'] = visualization.plot_forecast(data['bean'], forecast['forecast'], output_dir=viz_dir)
            results['forecast'] = forecast

        if 'importance' in steps:
            stage = 'importance'
            print("\nSTEP 5: FEATURE IMPORTANCE")
            importance_cfg = config['importance']
            model, importance_df = _run_stage(
                stage, feature_importance.compute_feature_importance,
                combined_df,
                n_estimators=importance_cfg['n_estimators'],
                random_state=importance_cfg['random_state'],
                n_repeats=importance_cfg['n_repeats'],
            )
            joblib.dump(model, os.path.join(output['models_dir'], 'random_forest_model.pkl'))
            importance_df.to_csv(os.path.join(output['outputs_dir'], 'feature_importance.csv'), index=False)
            plots['importance'] = visualization.plot_feature_importance(importance_df, output_dir=viz_dir)
            results['importance'] = importance_df

        stage = 'report'
        print("\nSTEP 6: REPORT")
        report_path = report.render_report(
            combined_df, plots, output['report_path'],
            regression=results['regression'],
            forecast=results['forecast'],
            importance=results['importance'],
            analysis=analysis,
        )

    except CoffeeAnalysisError as e:
        _record_failure(config, steps, start_time, e.stage or stage, e.message)
        raise
    except Exception as e:
        # Any other library error is reported against the running stage
        message = f"{type(e).__name__}: {e}"
        _record_failure(config, steps, start_time, stage, message)
        raise StageFailedError(message, stage=stage) from e

    elapsed_time = time.time() - start_time

    print("\n" + "=" * 80)
    print(f"PIPELINE COMPLETED IN {elapsed_time:.2f} SECONDS")
    print("=" * 80)

    record = {
        'timestamp': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
        'steps_executed': steps,
        'execution_time_seconds': elapsed_time,
        'combined_rows': int(len(combined_df)),
        'years': [int(combined_df['year'].min()), int(combined_df['year'].max())],
        'report_path': report_path,
        'status': 'completed',
    }
    write_pipeline_record(config, record)

    return {
        'data': data,
        'analysis': analysis,
        'regression': results['regression'],
        'forecast': results['forecast'],
        'importance': results['importance'],
        'plots': plots,
        'report_path': report_path,
        'record': record,
    }


def main(argv=None):
    """Main function to run the pipeline."""
    argv = sys.argv[1:] if argv is None else argv

    # If arguments provided, run only those model steps
    steps = argv or None

    try:
        run_pipeline(steps)
    except CoffeeAnalysisError as e:
        print(f"\nPIPELINE FAILED at stage '{e.stage}': {e.message}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
