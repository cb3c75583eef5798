"""Utility functions."""

from .env import load_pipeline_config, read_env_file, setup_logging

__all__ = ['load_pipeline_config', 'read_env_file', 'setup_logging']
