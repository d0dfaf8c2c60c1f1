"""
Compute backends for rendering.

- remote: HTTP client for the remote render/merge service
- local: manim CLI run as a subprocess, used as the fallback tier
"""

from .local import ManimRenderer, RenderOutput
from .remote import RemoteComputeClient, RemoteCompileResponse, RemoteMergeResponse

__all__ = [
    "ManimRenderer",
    "RenderOutput",
    "RemoteComputeClient",
    "RemoteCompileResponse",
    "RemoteMergeResponse",
]
