"""Capability gateways - classification, extraction and generation backends"""

from .base import BaseCapabilityGateway
from .keyword import KeywordGateway
from .openai import OpenAIGateway

# Backend name -> gateway class
handlers = {
    "keyword": KeywordGateway,
    "openai": OpenAIGateway,
}

default = "keyword"


def create_gateway(settings) -> BaseCapabilityGateway:
    """Build the gateway selected by settings."""
    backend = (settings.capability_backend or default).lower()
    if backend not in handlers:
        raise ValueError(f"Unknown capability backend '{backend}'. Available: {list(handlers.keys())}")
    return handlers[backend](**settings.get_capability_config())


__all__ = [
    "BaseCapabilityGateway",
    "KeywordGateway",
    "OpenAIGateway",
    "handlers",
    "default",
    "create_gateway",
]
