"""
Dynamic configuration lookup with a caller-supplied default.

A ``DynamicConfigClient`` is a session against a remote configuration service.
``ConfigResolver`` owns the acquire/release of that session and never lets a
missing record or field escape as an error: the default is used instead. Only
a session that cannot be initialized at all is reported, as
``DynamicConfigUnavailable``.
"""

from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

import pulumi
from statsig import StatsigOptions, StatsigUser
from statsig.statsig_server import StatsigServer


class DynamicConfigUnavailable(RuntimeError):
    pass


class DynamicConfigClient:
    """Interface of a dynamic configuration session."""

    def initialize(self) -> None:
        raise NotImplementedError

    def get_config(self, identity_key: str, config_name: str) -> Optional[Mapping[str, Any]]:
        raise NotImplementedError

    def shutdown(self) -> None:
        raise NotImplementedError


class StatsigClient(DynamicConfigClient):
    """Statsig server SDK session."""

    def __init__(
        self,
        server_key: str,
        environment: str = "production",
        global_fields: Optional[Dict[str, str]] = None,
        timeout: float = 3.0,
    ):
        self.server_key = server_key
        self.environment = environment
        self.global_fields = dict(global_fields or {})
        self.timeout = timeout
        self._server = None

    def initialize(self) -> None:
        options = StatsigOptions(
            tier=self.environment,
            global_custom_fields=self.global_fields,
            init_timeout=self.timeout,
            timeout=self.timeout,
        )
        server = StatsigServer()
        try:
            details = server.initialize(self.server_key, options)
        except Exception as e:
            raise DynamicConfigUnavailable(f"Statsig initialization failed: {e}") from e
        # Bad keys and network failures are reported here, not raised.
        if not details.init_success:
            server.shutdown()
            raise DynamicConfigUnavailable(f"Statsig initialization failed: {details.error}")
        self._server = server

    def get_config(self, identity_key: str, config_name: str) -> Optional[Mapping[str, Any]]:
        if self._server is None:
            raise DynamicConfigUnavailable("Statsig session is not initialized")
        user = StatsigUser(user_id=identity_key)
        return self._server.get_config(user, config_name).get_value()

    def shutdown(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server = None


def _is_empty(value: Any) -> bool:
    return value is None or (hasattr(value, "__len__") and len(value) == 0)


class ConfigResolver:
    def __init__(self, client_factory: Callable[[], DynamicConfigClient]):
        self.client_factory = client_factory

    @contextmanager
    def session(self) -> Iterator[DynamicConfigClient]:
        """Acquire and initialize a client; shut it down on exit, always."""
        client = self.client_factory()
        try:
            client.initialize()
            yield client
        finally:
            try:
                client.shutdown()
            except Exception as e:
                pulumi.log.warn(f"Failed to shut down dynamic config session: {e}")

    def resolve(
        self,
        config_name: str,
        identity_key: str,
        field_name: str,
        default: Any,
        session: Optional[DynamicConfigClient] = None,
    ) -> Any:
        """Return ``field_name`` of ``config_name``, or ``default`` when the record
        is missing, the field is missing or empty, or the fetch fails.

        Without an explicit ``session`` one is opened for this call only.
        """
        if session is None:
            with self.session() as owned:
                return self._lookup(owned, config_name, identity_key, field_name, default)
        return self._lookup(session, config_name, identity_key, field_name, default)

    def _lookup(self, session, config_name, identity_key, field_name, default):
        try:
            record = session.get_config(identity_key, config_name)
        except DynamicConfigUnavailable:
            raise
        except Exception as e:
            pulumi.log.warn(f"Failed to fetch dynamic config '{config_name}': {e}. Using default.")
            return default

        if not record:
            pulumi.log.info(f"Dynamic config '{config_name}' not found. Using default.")
            return default
        value = record.get(field_name)
        if _is_empty(value):
            pulumi.log.info(f"Field '{field_name}' not set in dynamic config '{config_name}'. Using default.")
            return default
        pulumi.log.info(f"Using '{field_name}' from dynamic config '{config_name}'.")
        return value
