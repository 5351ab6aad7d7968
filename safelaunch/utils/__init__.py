"""Utility helpers exposed by safelaunch."""

from .paths import state_dir

__all__ = ["state_dir"]
