"""
HTTP request instrumentation.

Request counts and latencies per handler are collected by
prometheus-fastapi-instrumentator and exposed on /metrics together with
the domain metrics registered in core.metrics.
"""

from prometheus_fastapi_instrumentator import Instrumentator

instrumentator = Instrumentator(
    should_group_status_codes=False,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/health"],
)
