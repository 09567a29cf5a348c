import time
import logging
from contextlib import contextmanager
from typing import Iterator

from .config import ACCESS_LOG_ENABLED
from .services.prometheus_metrics import prometheus_metrics

logger = logging.getLogger("ipgeo.access")

# Placeholder status; seeing it in a log line means a code path forgot to set one
UNSET_STATUS = 418

class RequestObservation:
    """Mutable per-request record filled in by the handler"""

    def __init__(self, method: str, remote: str, url: str):
        self.method = method
        self.remote = remote
        self.url = url
        self.ipaddress = ""
        self.status = UNSET_STATUS
        self.duration_ms = 0.0

@contextmanager
def observe_request(method: str, remote: str, url: str) -> Iterator[RequestObservation]:
    """Time a request and record it on exit, whichever way the handler leaves"""
    observation = RequestObservation(method, remote, url)
    start = time.perf_counter()
    try:
        yield observation
    finally:
        observation.duration_ms = (time.perf_counter() - start) * 1000
        prometheus_metrics.observe_request_duration(observation.status, observation.duration_ms)
        _log_request(observation)

def _log_request(observation: RequestObservation):
    """Log one access line with structured data"""
    level = logging.INFO
    if observation.status == UNSET_STATUS:
        level = logging.ERROR
    elif not ACCESS_LOG_ENABLED:
        return

    logger.log(level, "", extra={
        "duration": observation.duration_ms,
        "ipaddress": observation.ipaddress,
        "method": observation.method,
        "remote": observation.remote,
        "url": observation.url,
        "status": observation.status
    })
