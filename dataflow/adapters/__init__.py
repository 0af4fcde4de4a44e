"""
Channel Adapters

Provides the rendezvous channels and cancel token connecting pipeline stages.
"""

from dataflow.adapters.channel import CancelToken, RendezvousChannel

__all__ = ["CancelToken", "RendezvousChannel"]
