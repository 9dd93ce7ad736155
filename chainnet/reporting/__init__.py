"""Reporting utilities for chainnet."""

from .artifacts import describe_layers, write_manifest
from .metrics import CsvSink, JsonlSink, MetricsCapture
from .plots import PlotAdapter
from .summary import write_summary

__all__ = [
    "CsvSink",
    "JsonlSink",
    "MetricsCapture",
    "PlotAdapter",
    "describe_layers",
    "write_manifest",
    "write_summary",
]
