"""Metric snapshots, registry and exposition for the Prometheus exporter"""
from .models import (
    MetricKind,
    MetricType,
    CounterSnapshot,
    GaugeSnapshot,
    GaugeFloat64Snapshot,
    HistogramSnapshot,
    MeterSnapshot,
    TimerSnapshot,
    ResettingTimerSnapshot,
    CallbackMetric,
)

__all__ = [
    'MetricKind',
    'MetricType',
    'CounterSnapshot',
    'GaugeSnapshot',
    'GaugeFloat64Snapshot',
    'HistogramSnapshot',
    'MeterSnapshot',
    'TimerSnapshot',
    'ResettingTimerSnapshot',
    'CallbackMetric',
]
