"""End-to-end tests for the pipeline, report rendering and configuration."""

from __future__ import annotations

import copy
import json
from pathlib import Path

import pandas as pd
import pytest

import pipeline
import regression_model
from config import DEFAULT_CONFIG, load_config, validate_config
from errors import ConfigError, RebaseError, StageFailedError
from report import render_report


class TestPipeline:
    def test_end_to_end_scenario(self, make_inputs, make_config) -> None:
        config = make_config(make_inputs())
        results = pipeline.run_pipeline(['regression', 'importance'], config=config)

        combined = results['data']['combined']
        assert len(combined) == 6
        assert combined['year'].tolist() == list(range(2015, 2021))

        coefs = results['regression']['coefficients']['coef']
        assert coefs[['bean_price_usd_per_lb', 'cpi_2010']].notna().all()
        assert results['forecast'] is None
        assert Path(results['report_path']).exists()

    def test_full_run_writes_artefacts(self, make_inputs, make_config) -> None:
        config = make_config(make_inputs(bean_years=range(1990, 2021)))
        results = pipeline.run_pipeline(config=config)

        outputs = Path(config['output']['outputs_dir'])
        for name in ['combined_dataset.csv', 'bean_price_forecast.csv',
                     'feature_importance.csv', 'pipeline_record.json']:
            assert (outputs / name).exists(), name
        for name in ['regression_model.pkl', 'arima_model.pkl', 'random_forest_model.pkl']:
            assert (Path(config['output']['models_dir']) / name).exists(), name
        for path in results['plots'].values():
            assert Path(path).exists()

        # Forecast runs on the full bean history, not only the merged years
        assert results['forecast']['n_obs'] == 31
        assert results['forecast']['forecast']['year'].tolist() == list(range(2021, 2026))

        record = json.loads((outputs / 'pipeline_record.json').read_text())
        assert record['status'] == 'completed'
        assert record['combined_rows'] == 6

        html = Path(results['report_path']).read_text()
        for heading in ['Linear regression', 'Bean price forecast', 'Feature importance']:
            assert heading in html
        assert 'floored at 0' in html

    def test_unknown_steps_are_skipped(self, make_inputs, make_config) -> None:
        config = make_config(make_inputs())
        results = pipeline.run_pipeline(['regression', 'backtesting'], config=config)
        assert results['record']['steps_executed'] == ['regression']

    def test_failure_names_stage(self, make_inputs, make_config) -> None:
        config = make_config(make_inputs(include_baseline=False))
        with pytest.raises(RebaseError) as excinfo:
            pipeline.run_pipeline(config=config)
        assert excinfo.value.stage == 'data_preparation'

        record_path = Path(config['output']['outputs_dir']) / 'pipeline_record.json'
        record = json.loads(record_path.read_text())
        assert record['status'] == 'failed'
        assert record['failed_stage'] == 'data_preparation'

    def test_main_reports_failure(self, make_inputs, tmp_path: Path, monkeypatch, capsys) -> None:
        paths = make_inputs()
        monkeypatch.setenv('COFFEE_BEAN_PATH', str(tmp_path / 'missing.csv'))
        monkeypatch.setenv('COFFEE_RETAIL_PATH', paths['retail'])
        monkeypatch.setenv('COFFEE_INFLATION_PATH', paths['inflation'])
        monkeypatch.setenv('COFFEE_OUTPUT_DIR', str(tmp_path / 'run'))

        assert pipeline.main(['regression']) == 1
        out = capsys.readouterr().out
        assert "PIPELINE FAILED at stage 'data_preparation'" in out
        assert 'missing.csv' in out

    def test_library_error_is_reported_with_stage(self, make_inputs, make_config, monkeypatch) -> None:
        def failing_fit(df):
            raise RuntimeError("design matrix exploded")

        monkeypatch.setattr(regression_model, 'fit_regression_model', failing_fit)
        config = make_config(make_inputs())
        with pytest.raises(StageFailedError) as excinfo:
            pipeline.run_pipeline(['regression'], config=config)
        assert excinfo.value.stage == 'regression'
        assert isinstance(excinfo.value.__cause__, RuntimeError)

        record_path = Path(config['output']['outputs_dir']) / 'pipeline_record.json'
        record = json.loads(record_path.read_text())
        assert record['status'] == 'failed'
        assert record['failed_stage'] == 'regression'
        assert 'RuntimeError' in record['error']

    def test_main_reports_library_error(self, make_inputs, tmp_path: Path, monkeypatch, capsys) -> None:
        def failing_fit(df):
            raise RuntimeError("design matrix exploded")

        monkeypatch.setattr(regression_model, 'fit_regression_model', failing_fit)
        paths = make_inputs()
        monkeypatch.setenv('COFFEE_BEAN_PATH', paths['bean'])
        monkeypatch.setenv('COFFEE_RETAIL_PATH', paths['retail'])
        monkeypatch.setenv('COFFEE_INFLATION_PATH', paths['inflation'])
        monkeypatch.setenv('COFFEE_OUTPUT_DIR', str(tmp_path / 'run'))

        assert pipeline.main(['regression']) == 1
        out = capsys.readouterr().out
        assert "PIPELINE FAILED at stage 'regression'" in out
        assert 'design matrix exploded' in out

    def test_main_rejects_non_positive_horizon(self, make_inputs, tmp_path: Path, monkeypatch, capsys) -> None:
        paths = make_inputs()
        monkeypatch.setenv('COFFEE_BEAN_PATH', paths['bean'])
        monkeypatch.setenv('COFFEE_RETAIL_PATH', paths['retail'])
        monkeypatch.setenv('COFFEE_INFLATION_PATH', paths['inflation'])
        monkeypatch.setenv('COFFEE_OUTPUT_DIR', str(tmp_path / 'run'))
        monkeypatch.setenv('COFFEE_FORECAST_HORIZON', '0')

        assert pipeline.main(['forecast']) == 1
        out = capsys.readouterr().out
        assert "PIPELINE FAILED at stage 'configuration'" in out

        record = json.loads((tmp_path / 'run' / 'outputs' / 'pipeline_record.json').read_text())
        assert record['status'] == 'failed'
        assert record['failed_stage'] == 'configuration'


class TestReport:
    def test_sections_follow_available_results(self, combined_df: pd.DataFrame, tmp_path: Path) -> None:
        plot = tmp_path / 'plots' / 'markup_ratio.png'
        plot.parent.mkdir()
        plot.write_bytes(b'')
        coefficients = pd.DataFrame(
            {'coef': [0.1, 2.0, 0.5], 'std_err': [0.01] * 3, 't_value': [10.0] * 3, 'p_value': [0.0] * 3},
            index=pd.Index(['const', 'bean_price_usd_per_lb', 'cpi_2010'], name='term'),
        )
        regression = {'coefficients': coefficients, 'r_squared': 0.99,
                      'adj_r_squared': 0.98, 'n_obs': 10, 'bp_pvalue': float('nan')}

        output = tmp_path / 'report' / 'report.html'
        render_report(combined_df, {'markup_ratio': str(plot)}, str(output), regression=regression)

        html = output.read_text()
        assert 'Linear regression' in html
        assert 'bean_price_usd_per_lb' in html
        assert '../plots/markup_ratio.png' in html
        assert 'Bean price forecast' not in html
        assert 'Feature importance' not in html


class TestConfig:
    def test_defaults(self, monkeypatch) -> None:
        for name in ['COFFEE_CPI_COUNTRY', 'COFFEE_RANDOM_STATE', 'COFFEE_OUTPUT_DIR']:
            monkeypatch.delenv(name, raising=False)
        config = load_config()
        assert config['cpi_country'] == DEFAULT_CONFIG['cpi_country']
        assert config['forecast']['horizon'] == 5
        assert config is not DEFAULT_CONFIG

    def test_environment_overrides(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv('COFFEE_CPI_COUNTRY', 'Brazil')
        monkeypatch.setenv('COFFEE_RANDOM_STATE', '7')
        monkeypatch.setenv('COFFEE_OUTPUT_DIR', str(tmp_path))
        config = load_config()
        assert config['cpi_country'] == 'Brazil'
        assert config['importance']['random_state'] == 7
        assert config['output']['report_path'].startswith(str(tmp_path))
        assert DEFAULT_CONFIG['cpi_country'] == 'United States'

    def test_invalid_integer_is_ignored(self, monkeypatch) -> None:
        monkeypatch.setenv('COFFEE_FORECAST_HORIZON', 'soon')
        config = load_config()
        assert config['forecast']['horizon'] == DEFAULT_CONFIG['forecast']['horizon']

    def test_validation_rejects_unknown_criterion(self) -> None:
        config = copy.deepcopy(DEFAULT_CONFIG)
        config['forecast']['information_criterion'] = 'mse'
        with pytest.raises(ConfigError, match='information_criterion'):
            validate_config(config)

    def test_validation_accepts_defaults(self) -> None:
        config = copy.deepcopy(DEFAULT_CONFIG)
        assert validate_config(config) is config
