"""Core services for settings, logging and render budgets."""

from .config import AppConfig, default_dictionary_path, load_config, save_config
from .logging_setup import configure_logging, get_logger
from .performance import BudgetStatus, PerformanceController, PerformanceTargets

__all__ = [
    "AppConfig",
    "BudgetStatus",
    "PerformanceController",
    "PerformanceTargets",
    "configure_logging",
    "default_dictionary_path",
    "get_logger",
    "load_config",
    "save_config",
]
