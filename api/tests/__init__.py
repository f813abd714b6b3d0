"""
Test suite for the AgriSense advisory service.

Provides:
- Fallback chain tests (text and vision)
- Job lifecycle and pipeline supervision tests
- Room delivery tests
- API tests
"""
