"""
Centralized configuration management for kubeinventory.

Provides a unified interface for accessing environment variables and
configuration with defaults and validation. CLI flags take precedence
over the values read here.
"""

import os
from typing import Optional

SORT_MODES = ("kind", "name", "group")


class Config:
    """
    Centralized configuration management.

    Provides access to environment variables and configuration with
    sensible defaults and validation.
    """

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> str:
        """
        Get an environment variable with optional default.

        Args:
            key: Environment variable name
            default: Default value if not set

        Returns:
            Environment variable value, default, or an empty string
        """
        return os.getenv(key, default) or ""

    @staticmethod
    def get_bool(key: str, default: bool = False) -> bool:
        """
        Get a boolean environment variable.

        Args:
            key: Environment variable name
            default: Default value if not set

        Returns:
            Boolean value
        """
        value = os.getenv(key, "").lower()
        if value in ("true", "1", "yes", "on"):
            return True
        elif value in ("false", "0", "no", "off"):
            return False
        return default

    @staticmethod
    def get_int(key: str, default: int, minimum: int = 1) -> int:
        """
        Get a positive integer environment variable.

        Args:
            key: Environment variable name
            default: Default value if not set or empty
            minimum: Smallest accepted value

        Returns:
            Integer value

        Raises:
            ValueError: If the value is not an integer or is below minimum
        """
        raw = os.getenv(key, "").strip()
        if not raw:
            return default
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"Environment variable {key} must be an integer, got {raw!r}")
        if value < minimum:
            raise ValueError(f"Environment variable {key} must be at least {minimum}, got {value}")
        return value

    @staticmethod
    def kubeconfig() -> Optional[str]:
        """
        Get the kubeconfig path from environment.

        Returns:
            Path or None to let the kubernetes client use its default
        """
        return Config.get("KUBECONFIG") or None

    @staticmethod
    def context() -> Optional[str]:
        """Context to use instead of the kubeconfig's current context, or None."""
        return Config.get("KUBEINVENTORY_CONTEXT") or None

    @staticmethod
    def namespace() -> Optional[str]:
        """Namespace to use instead of the context's namespace, or None."""
        return Config.get("KUBEINVENTORY_NAMESPACE") or None

    @staticmethod
    def workers() -> int:
        """
        Get the number of concurrent probes.

        Returns:
            Worker count (defaults to 1, sequential probing)
        """
        return Config.get_int("KUBEINVENTORY_WORKERS", 1)

    @staticmethod
    def probe_limit() -> int:
        """
        Get the list limit sent with each probe.

        Returns:
            Limit (defaults to 1, enough to tell empty from non-empty)
        """
        return Config.get_int("KUBEINVENTORY_PROBE_LIMIT", 1)

    @staticmethod
    def request_timeout() -> int:
        """
        Get the per-request timeout in seconds for discovery and probes.

        Returns:
            Timeout (defaults to 30)
        """
        return Config.get_int("KUBEINVENTORY_REQUEST_TIMEOUT", 30)

    @staticmethod
    def sort_by() -> str:
        """
        Get the inventory sort mode.

        Returns:
            One of "kind", "name" or "group" (defaults to "kind")

        Raises:
            ValueError: If the mode is not supported
        """
        mode = Config.get("KUBEINVENTORY_SORT_BY", "kind").lower()
        if mode not in SORT_MODES:
            raise ValueError(
                f"KUBEINVENTORY_SORT_BY must be one of {', '.join(SORT_MODES)}, got {mode!r}"
            )
        return mode

    @staticmethod
    def keep_partial() -> bool:
        """Whether a cancelled run keeps the results collected so far."""
        return Config.get_bool("KUBEINVENTORY_KEEP_PARTIAL", False)

