"""
Routing

Stream replication between pipeline stages.
"""

from dataflow.routing.fanout import Fanout

__all__ = ["Fanout"]
