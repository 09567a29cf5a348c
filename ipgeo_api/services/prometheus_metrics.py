"""
Prometheus metrics for the IP geolocation API
"""

from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST

from ..config import APP_VERSION

# Build info
BUILD_INFO = Gauge(
    'ipgeo_build_info',
    'Build information',
    ['version']
)

# Lookup latency, labelled by the final HTTP status code
REQUEST_DURATION = Histogram(
    'ipgeo_request_duration_milliseconds',
    'Lookup request duration in milliseconds',
    ['code'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 25, 50, 100, 250, 1000]
)

# Per-dataset lookup misses and errors
LOOKUP_ERRORS_TOTAL = Counter(
    'ipgeo_lookup_errors_total',
    'Total number of dataset lookups that returned no record',
    ['dataset']
)

# Dataset load state
GEOIP_LOADED = Gauge(
    'ipgeo_geoip_loaded',
    'City database loaded status (1=loaded, 0=not loaded)'
)

ASN_LOADED = Gauge(
    'ipgeo_asn_loaded',
    'ASN database loaded status (1=loaded, 0=not loaded)'
)

class PrometheusMetrics:
    """Service for managing Prometheus metrics."""

    def __init__(self):
        BUILD_INFO.labels(version=APP_VERSION).set(1)

    def observe_request_duration(self, status_code: int, duration_ms: float):
        """Observe lookup latency for a final status code."""
        REQUEST_DURATION.labels(code=str(status_code)).observe(duration_ms)

    def increment_lookup_errors(self, dataset: str, count: int = 1):
        """Increment lookup error counter for a dataset."""
        LOOKUP_ERRORS_TOTAL.labels(dataset=dataset).inc(count)

    def set_geoip_loaded(self, loaded: bool):
        """Set City database loaded status."""
        GEOIP_LOADED.set(1 if loaded else 0)

    def set_asn_loaded(self, loaded: bool):
        """Set ASN database loaded status."""
        ASN_LOADED.set(1 if loaded else 0)

    def get_metrics(self) -> bytes:
        """Get Prometheus metrics in text format."""
        return generate_latest()

    def get_content_type(self) -> str:
        """Get the content type for Prometheus metrics."""
        return CONTENT_TYPE_LATEST

# Global metrics instance
prometheus_metrics = PrometheusMetrics()
