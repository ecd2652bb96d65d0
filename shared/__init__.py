"""
Shared utilities for the YApi MCP Access Layer.

This package aggregates common building blocks consumed by the service:

- config: Settings via pydantic-settings
- logging: Structured logging with correlation ids
- metrics: Prometheus metrics helpers
- errors: Canonical error types

Do not import from service_* packages into shared/.
"""
