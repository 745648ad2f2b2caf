"""Wake notifications sent through the OpenClaw gateway."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from antfarm.config import AntfarmConfig

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_PORT = 18789


@dataclass(frozen=True)
class GatewayConfig:
    """Where to reach the gateway and how to authenticate."""

    url: str = f"http://127.0.0.1:{DEFAULT_GATEWAY_PORT}"
    token: str | None = None


def load_gateway_config(path: Path) -> GatewayConfig:
    """Read gateway settings from the OpenClaw JSON config.

    Any problem with the file (missing, unreadable, not JSON, wrong shape)
    yields the default local endpoint without a token.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug("Gateway config %s not found, using defaults", path)
        return GatewayConfig()
    except (OSError, ValueError) as e:
        logger.warning("Could not read gateway config %s: %s", path, e)
        return GatewayConfig()

    gateway = data.get("gateway") if isinstance(data, dict) else None
    if not isinstance(gateway, dict):
        return GatewayConfig()

    port = gateway.get("port")
    if not isinstance(port, int) or isinstance(port, bool):
        port = DEFAULT_GATEWAY_PORT

    auth = gateway.get("auth")
    token = auth.get("token") if isinstance(auth, dict) else None
    if not isinstance(token, str) or not token:
        token = None

    return GatewayConfig(url=f"http://127.0.0.1:{port}", token=token)


def session_key(agent_id: str) -> str:
    """Session key scoping a gateway call to one agent."""
    return f"agent:{agent_id}:{agent_id}"


class GatewayClient:
    """Sends best-effort wake requests to the gateway."""

    def __init__(
        self,
        gateway: GatewayConfig,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.gateway = gateway
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: AntfarmConfig) -> "GatewayClient":
        """Build a client from the gateway file named in the Antfarm config."""
        return cls(
            load_gateway_config(config.gateway_config_path),
            timeout=config.gateway_request_timeout,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.gateway.token:
            headers["Authorization"] = f"Bearer {self.gateway.token}"
        return headers

    @staticmethod
    def _wake_payload(agent_id: str) -> dict[str, Any]:
        return {
            "tool": "cron",
            "args": {"action": "wake", "mode": "now"},
            "sessionKey": session_key(agent_id),
        }

    async def wake(self, agent_id: str) -> bool:
        """Ask the gateway to wake ``agent_id`` now.

        Returns True only for a 2xx response. Never raises.
        """
        url = f"{self.gateway.url.rstrip('/')}/tools/invoke"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    url,
                    json=self._wake_payload(agent_id),
                    headers=self._headers(),
                )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Gateway rejected wake for %s: %s",
                agent_id,
                e.response.status_code,
            )
            return False
        except httpx.HTTPError as e:
            logger.warning("Wake request for %s failed: %s", agent_id, e)
            return False
        except Exception:
            logger.exception("Unexpected error waking %s", agent_id)
            return False

        logger.debug("Woke agent %s", agent_id)
        return True
