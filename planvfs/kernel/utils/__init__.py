"""Small shared helpers."""

from planvfs.kernel.utils.timer import Timer, step_timer

__all__ = ["Timer", "step_timer"]
