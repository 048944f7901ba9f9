"""Upstream subgraph access."""

from koma.services.subgraph.client import SubgraphClient

__all__ = ["SubgraphClient"]
