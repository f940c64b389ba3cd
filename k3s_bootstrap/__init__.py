"""K3s bootstrap medium builder (Python-first, state-driven).

Core design goals:
- One site config drives every generated artifact
- Refuse bad devices/payloads before touching the disk
- No automated rollback once partitioning starts
- Resumable post-install driver with persisted state
- Centralized logging
"""

__all__ = []
