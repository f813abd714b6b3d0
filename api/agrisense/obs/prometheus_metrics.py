from __future__ import annotations
from prometheus_client import Counter, Histogram, Gauge, Info, generate_latest, CONTENT_TYPE_LATEST
from agrisense.obs.logging_setup import get_logger

logger = get_logger(__name__)

REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

ADVISORY_JOBS_TOTAL = Counter(
    'advisory_jobs_total',
    'Advisory jobs by capability and terminal status',
    ['capability', 'status']
)

ADVISORY_JOB_DURATION = Histogram(
    'advisory_job_duration_seconds',
    'Time from job start to terminal state',
    ['capability'],
    buckets=(0.1, 0.5, 1, 2, 5, 10, 20, 40, 90)
)

PROVIDER_TIER_OUTCOMES = Counter(
    'provider_tier_outcomes_total',
    'Fallback chain tier attempts by outcome',
    ['capability', 'tier', 'outcome']
)

ROOM_DELIVERIES = Counter(
    'room_deliveries_total',
    'Events published to live rooms',
    ['event', 'delivered']
)

ACTIVE_JOBS = Gauge(
    'advisory_active_jobs',
    'Generation tasks currently running'
)

SERVICE_INFO = Info(
    'service_info',
    'Service information'
)

class PrometheusMetrics:
    """Prometheus metrics collector with convenience methods."""

    def __init__(self):
        SERVICE_INFO.info({'version': '1.0.0', 'service': 'agrisense-advisory'})

    def record_request(self, method: str, endpoint: str, status_code: int, duration_seconds: float):
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration_seconds)

    def record_job(self, capability: str, status: str, duration_seconds: float):
        ADVISORY_JOBS_TOTAL.labels(capability=capability, status=status).inc()
        ADVISORY_JOB_DURATION.labels(capability=capability).observe(duration_seconds)

    def record_tier(self, capability: str, tier: str, outcome: str):
        PROVIDER_TIER_OUTCOMES.labels(capability=capability, tier=tier, outcome=outcome).inc()

    def record_delivery(self, event: str, delivered: int):
        ROOM_DELIVERIES.labels(event=event, delivered="yes" if delivered else "no").inc()

    def update_active_jobs(self, count: int):
        ACTIVE_JOBS.set(count)

    def get_prometheus_metrics(self) -> bytes:
        return generate_latest()

    def get_content_type(self) -> str:
        return CONTENT_TYPE_LATEST

# Global Prometheus metrics instance
prometheus_metrics = PrometheusMetrics()
