"""Terminal rendering of verification, build and run reports."""

from wasmforge.monitor.renderer import ReportRenderer

__all__ = ["ReportRenderer"]
