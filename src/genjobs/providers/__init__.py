"""Outbound provider clients and credential sources."""

from .credentials import AccessTokenSource, GoogleAdcTokenSource, StaticTokenSource
from .providers_base import PredictionProvider
from .providers_vertex import VertexPredictionClient

__all__ = [
    "AccessTokenSource",
    "GoogleAdcTokenSource",
    "StaticTokenSource",
    "PredictionProvider",
    "VertexPredictionClient",
]
