"""Data models for measurement records, traffic, and exports."""

from .record import MeasurementRecord
