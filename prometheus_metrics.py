"""
TruFraudBot - Prometheus Metrics
Provides Prometheus-compatible metrics for monitoring and observability.
"""

from prometheus_client import Counter, Histogram, Gauge, start_http_server
import logger as log


# --- Routing Metrics ---

messages_routed = Counter(
    'trufraud_messages_routed_total',
    'Inbound messages the bot decided to act on',
    ['mode', 'channel_type']  # mode: plain, rules; channel_type: dm, server
)

commands_handled = Counter(
    'trufraud_commands_handled_total',
    'Administrative commands handled',
    ['mode', 'command']
)


# --- API Metrics ---

api_requests = Counter(
    'trufraud_api_requests_total',
    'Total number of backend requests made',
    ['model', 'status']  # status: success, error, timeout, transport_error, invalid_response
)

api_request_duration = Histogram(
    'trufraud_api_request_duration_seconds',
    'Backend request duration in seconds',
    ['model'],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0]
)

model_fallbacks = Counter(
    'trufraud_model_fallbacks_total',
    'Times a model was skipped for quota or availability',
    ['model']
)

chat_outcomes = Counter(
    'trufraud_chat_outcomes_total',
    'Result of each chat exchange',
    ['outcome']  # outcome: reply, auth_error, exhausted, backend_error
)


# --- State Metrics ---

active_sessions = Gauge(
    'trufraud_active_sessions',
    'Conversation sessions currently held in memory'
)


# --- Error & Storage Metrics ---

errors_total = Counter(
    'trufraud_errors_total',
    'Total number of errors caught at the router boundary',
    ['error_type']
)

rule_mutations = Counter(
    'trufraud_rule_mutations_total',
    'Rule file mutations',
    ['operation']  # operation: add, remove, edit
)


# --- Metrics Manager ---

class MetricsManager:
    """Centralized metrics management for TruFraudBot."""

    def __init__(self):
        self._started = False

    def start_metrics_server(self, port: int):
        """Start the Prometheus metrics HTTP server."""
        if self._started:
            return

        try:
            start_http_server(port)
            self._started = True
            log.info(f"Prometheus metrics server started on port {port}")
        except OSError as e:
            log.error(f"Failed to start metrics server: {e}")

    def record_message(self, mode: str, is_dm: bool):
        messages_routed.labels(mode=mode, channel_type='dm' if is_dm else 'server').inc()

    def record_command(self, mode: str, command: str):
        commands_handled.labels(mode=mode, command=command).inc()

    def record_api_request(self, model: str, status: str, duration_seconds: float):
        """Record a backend request."""
        api_requests.labels(model=model, status=status).inc()
        api_request_duration.labels(model=model).observe(duration_seconds)

    def record_fallback(self, model: str):
        model_fallbacks.labels(model=model).inc()

    def record_chat_outcome(self, outcome: str):
        chat_outcomes.labels(outcome=outcome).inc()

    def update_active_sessions(self, count: int):
        active_sessions.set(count)

    def record_error(self, error_type: str):
        errors_total.labels(error_type=error_type).inc()

    def record_rule_mutation(self, operation: str):
        rule_mutations.labels(operation=operation).inc()


# Global metrics manager instance
metrics_manager = MetricsManager()
