"""
Coffee Price Analysis - Errors
------------------------------
Exceptions raised by the analysis pipeline. Every error is fatal to the run;
the pipeline tags the error with the stage it was raised in before reporting it.
"""


class CoffeeAnalysisError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message, stage=None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self):
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class MissingFileError(CoffeeAnalysisError):
    """An input file does not exist."""


class ParseError(CoffeeAnalysisError):
    """An input file is malformed or lacks a required column."""


class RebaseError(CoffeeAnalysisError):
    """The CPI series has no usable baseline year row."""


class JoinEmptyError(CoffeeAnalysisError):
    """The sources share no common year."""


class SingularMatrixError(CoffeeAnalysisError):
    """The regression design matrix is not full column rank."""


class InsufficientDataError(CoffeeAnalysisError):
    """Too few observations to fit a model."""


class SeriesGapError(CoffeeAnalysisError):
    """A yearly series has missing years."""


class ZeroBeanPriceError(CoffeeAnalysisError, ZeroDivisionError):
    """The markup ratio is undefined for a zero bean price."""


class ConfigError(CoffeeAnalysisError):
    """A configuration value is out of range."""


class StageFailedError(CoffeeAnalysisError):
    """An unexpected library error inside a pipeline stage."""
