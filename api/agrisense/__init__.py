"""
AgriSense Advisory - agricultural advisory service.

Farmers submit questions or plant photos and receive guidance:
- Text answers from an LLM with a keyword fallback
- Plant disease identification through a three-tier vision chain
- Knowledge-base context for answers
- Localized reports
- Asynchronous jobs with polling and live room delivery over SSE
- OpenTelemetry, Prometheus and Langfuse observability

The ASGI application lives in ``agrisense.main:app``.
"""

__version__ = "1.0.0"
__description__ = "Agricultural advisory service with fallback inference chains"
