"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Object storage providers (Vercel Blob, S3-compatible) and fallbacks
- compute: Remote compute service and the local Manim renderer

These wrappers translate between external formats and our domain models.
"""
