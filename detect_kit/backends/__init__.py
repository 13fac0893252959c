"""
Optional inference backends for detect_kit.

Kept apart so decoding/NMS can be used without installing an inference runtime.
"""

from __future__ import annotations

__all__ = []
