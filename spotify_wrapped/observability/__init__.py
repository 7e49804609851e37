# noqa: D104 - package initialization
from .logging import configure_structured_logging, install_traffic_logging  # noqa: F401
from .metrics import metrics_blueprint, record_login, record_rate_limited, record_upstream_call  # noqa: F401
from .tracing import init_tracing  # noqa: F401
