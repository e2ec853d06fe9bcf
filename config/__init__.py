"""
Configuration package - exposes the global config instance.
"""

from .default_config import Config, config

__all__ = ['Config', 'config']
