"""
Prometheus metrics for the call panel API
"""

from prometheus_client import Counter, Gauge, generate_latest, CONTENT_TYPE_LATEST

from callpanel.config import API_VERSION

BUILD_INFO = Gauge(
    'callpanel_build_info',
    'Build information',
    ['version']
)

REQUESTS_TOTAL = Counter(
    'callpanel_requests_total',
    'Total number of HTTP requests',
    ['status_class']
)

CALLS_INGESTED_TOTAL = Counter(
    'callpanel_calls_ingested_total',
    'Calls accepted, persisted and broadcast',
    ['source']
)

INGEST_REJECT_TOTAL = Counter(
    'callpanel_ingest_reject_total',
    'Ingestion requests rejected',
    ['reason']
)

BROADCASTS_TOTAL = Counter(
    'callpanel_broadcasts_total',
    'Events fanned out to socket rooms',
    ['event']
)

SOCKET_MESSAGES_DROPPED_TOTAL = Counter(
    'callpanel_socket_messages_dropped_total',
    'Outbound socket messages dropped because a client queue was full'
)

PAIRING_ATTEMPTS_TOTAL = Counter(
    'callpanel_pairing_attempts_total',
    'Pairing validations by outcome',
    ['outcome']
)

SOCKET_REJECTED_TOTAL = Counter(
    'callpanel_socket_rejected_total',
    'Socket connections rejected at handshake',
    ['reason']
)

SOCKETS_CONNECTED = Gauge(
    'callpanel_sockets_connected',
    'Currently connected display sockets'
)


class PrometheusMetrics:
    """Thin facade over the module-level collectors"""

    def __init__(self):
        BUILD_INFO.labels(version=API_VERSION).set(1)

    def increment_requests(self, status_code: int):
        if 200 <= status_code < 300:
            status_class = "2xx"
        elif 400 <= status_code < 500:
            status_class = "4xx"
        elif status_code >= 500:
            status_class = "5xx"
        else:
            status_class = "other"
        REQUESTS_TOTAL.labels(status_class=status_class).inc()

    def increment_calls_ingested(self, source: str):
        CALLS_INGESTED_TOTAL.labels(source=source).inc()

    def increment_ingest_reject(self, reason: str):
        INGEST_REJECT_TOTAL.labels(reason=reason).inc()

    def increment_broadcasts(self, event: str):
        BROADCASTS_TOTAL.labels(event=event).inc()

    def increment_socket_dropped(self, count: int = 1):
        SOCKET_MESSAGES_DROPPED_TOTAL.inc(count)

    def increment_pairing(self, outcome: str):
        PAIRING_ATTEMPTS_TOTAL.labels(outcome=outcome).inc()

    def increment_socket_rejected(self, reason: str):
        SOCKET_REJECTED_TOTAL.labels(reason=reason).inc()

    def set_sockets_connected(self, count: int):
        SOCKETS_CONNECTED.set(count)

    def get_metrics(self) -> bytes:
        return generate_latest()

    def get_content_type(self) -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
