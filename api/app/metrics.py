from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response

# Tag listing page fan-in
tag_page_assembly_duration = Histogram(
    "tagboard_tag_page_assembly_duration_seconds",
    "Time to gather every lookup for one tag listing page",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

tag_collect_events = Counter(
    "tagboard_tag_collect_events_total",
    "Tag collect / de-collect requests",
    ["action", "result"],  # action: collect | de_collect; result: created | removed | noop | failed
)

# HTTP request metrics (from middleware)
http_requests = Counter(
    "tagboard_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

http_request_duration = Histogram(
    "tagboard_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "path"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


async def metrics_endpoint():
    """FastAPI endpoint handler that returns Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
