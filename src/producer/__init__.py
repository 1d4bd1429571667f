"""Alert producer — probes and the run-once orchestration."""

from src.producer.factory import create_producer
from src.producer.probes import (
    DiskGrowthProbe,
    DiskUsageProbe,
    IoActivityProbe,
    LargeLogProbe,
    MemoryUsageProbe,
    Probe,
    ProbeError,
    ProbeResult,
    ProbeUnavailableError,
    StorageExistsProbe,
    SystemLoadProbe,
    build_probes,
)
from src.producer.producer import ProduceReport, Producer

__all__ = [
    "DiskGrowthProbe",
    "DiskUsageProbe",
    "IoActivityProbe",
    "LargeLogProbe",
    "MemoryUsageProbe",
    "Probe",
    "ProbeError",
    "ProbeResult",
    "ProbeUnavailableError",
    "ProduceReport",
    "Producer",
    "StorageExistsProbe",
    "SystemLoadProbe",
    "build_probes",
    "create_producer",
]
