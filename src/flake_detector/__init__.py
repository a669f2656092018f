__version__ = "0.1.0"

__all__ = [
    "FlakeDetector",
    "DetectorConfig",
    "LatencyHistogram",
    "MetricsAccumulator",
    "QueryResult",
    "EndpointReport",
    "calculate_flakiness_score",
]


from .config import DetectorConfig
from .core import FlakeDetector
from .histogram import LatencyHistogram
from .metrics import MetricsAccumulator, calculate_flakiness_score
from .models import QueryResult, EndpointReport
