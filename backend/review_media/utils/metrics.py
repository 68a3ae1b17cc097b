"""
Prometheus metrics definitions for the review media API.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Media ingestion metrics
media_files_stored_total = Counter(
    'media_files_stored_total',
    'Total media files persisted',
    ['media_type']
)

media_bytes_stored_total = Counter(
    'media_bytes_stored_total',
    'Total bytes of media persisted'
)

media_rejections_total = Counter(
    'media_rejections_total',
    'Total media batches rejected by the ingestion gate',
    ['code']
)

# Review metrics
reviews_created_total = Counter(
    'reviews_created_total',
    'Total reviews created',
    ['source']
)
