"""
Core orchestration logic for video compilation.

This module is framework-agnostic - it doesn't import FastAPI, boto3,
or httpx. Storage providers and renderers are reached through protocols
so the fallback chains can be tested in isolation.
"""
