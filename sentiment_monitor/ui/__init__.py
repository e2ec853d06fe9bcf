"""
UI Components for the FX Sentiment Monitor

Console rendering of the cached sentiment and an interactive key thread.
"""

from .console_view import render_entry, print_entry
from .interactive_ui import InteractiveUI

__all__ = ['render_entry', 'print_entry', 'InteractiveUI']
