"""OpenClaw gateway integration.

The gateway is the external HTTP service that accepts wake notifications on
behalf of agents. This package only knows how to find it and how to ask it to
wake an agent.
"""

from .client import GatewayClient, GatewayConfig, load_gateway_config

__all__ = ["GatewayClient", "GatewayConfig", "load_gateway_config"]
