"""
Core business logic components.

This package contains the request-independent parts of the service:
- Caller identity hashing and rate limiting
- Single-flight dataset cache and remote store client
- Filter engine, statistics and sampling
- Metrics collection
"""
