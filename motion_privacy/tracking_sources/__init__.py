"""Tracking source implementations."""

from .synthetic import SyntheticTrackingSource
from .udp_bridge import UdpBridgeTrackingSource

__all__ = [
    "SyntheticTrackingSource",
    "UdpBridgeTrackingSource",
]
