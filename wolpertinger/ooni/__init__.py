"""OONI measurement ingestion."""

from wolpertinger.ooni.measurement import (
    MeasurementError,
    OoniMeasurement,
    blocked_targets,
    external_id_index,
    load_measurement,
    probe_location,
    record_measurement,
)

__all__ = [
    "MeasurementError",
    "OoniMeasurement",
    "blocked_targets",
    "external_id_index",
    "load_measurement",
    "probe_location",
    "record_measurement",
]
