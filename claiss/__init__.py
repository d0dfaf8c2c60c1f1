"""
Claiss - educational video generation service.

This package contains the complete application:
- core: Framework-agnostic orchestration (retry, compilation, merging)
- infrastructure: Storage providers and compute backends
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
