"""Redis-based state management backend."""

import json
from datetime import datetime, timezone
from typing import Optional

import redis
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from marketvault.config import RedisSettings

logger = structlog.get_logger(__name__)


class RedisStateBackend:
    """Redis-backed persistence for the vault's registry state."""

    def __init__(self, namespace: str, settings: Optional[RedisSettings] = None):
        """
        Initialize Redis connection.

        Args:
            namespace: Vault identifier used in the state key (e.g. the vault address)
            settings: Connection settings; read from REDIS_* env vars when omitted
        """
        self._settings = settings or RedisSettings()
        self._namespace = namespace
        self._state_key = f"marketvault:state:{namespace}"

        self._client = redis.Redis(
            host=self._settings.host,
            port=self._settings.port,
            password=self._settings.password,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )

        logger.info(
            "redis.backend_initialized",
            namespace=namespace,
            host=self._settings.host,
            port=self._settings.port,
            state_key=self._state_key,
        )

    @retry(
        retry=retry_if_exception_type(redis.ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        reraise=True,
    )
    def save_state(self, vault_state: dict) -> None:
        """Persist vault state with a TTL so abandoned vaults expire."""
        state = {
            "version": 1,
            "last_saved": datetime.now(timezone.utc).isoformat(),
            "vault": vault_state,
        }

        try:
            self._client.setex(
                self._state_key,
                self._settings.state_ttl_seconds,
                json.dumps(state, default=str),
            )
            logger.debug(
                "redis.state_saved",
                namespace=self._namespace,
                markets=len(vault_state.get("registry", {}).get("entries", [])),
            )
        except redis.ConnectionError:
            logger.warning("redis.save_connection_error", namespace=self._namespace)
            raise
        except Exception as e:
            logger.error(
                "redis.save_failed",
                namespace=self._namespace,
                error=str(e),
                exc_info=True,
            )
            raise

    def load_state(self) -> Optional[dict]:
        """
        Load vault state from Redis.

        Returns:
            Vault state dict if found and parseable, None otherwise
        """
        state_json = self._client.get(self._state_key)

        if state_json is None:
            logger.info(
                "redis.no_state_found",
                namespace=self._namespace,
                state_key=self._state_key,
            )
            return None

        try:
            state = json.loads(state_json)
        except json.JSONDecodeError as e:
            logger.error(
                "redis.state_parse_failed",
                namespace=self._namespace,
                error=str(e),
            )
            return None

        logger.info(
            "redis.state_loaded",
            namespace=self._namespace,
            last_saved=state.get("last_saved"),
        )
        return state.get("vault")

    def close(self) -> None:
        """Close Redis connection."""
        try:
            self._client.close()
            logger.debug("redis.connection_closed", namespace=self._namespace)
        except redis.RedisError as e:
            logger.warning("redis.close_failed", error=str(e))
