"""Kubernetes broadcast gateway.

Discovers the pods behind a label selector and replays each request under
``/broadcast`` against every one of them:
 - instance directory with a short TTL cache (``directory``)
 - concurrent fan-out with per-target failure isolation (``broadcast``)
 - request routing with synchronous or fire-and-forget replies (``gateway``)
"""

__version__ = "0.1.0"
