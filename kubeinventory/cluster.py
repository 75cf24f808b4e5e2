"""
Cluster collaborators built on the official kubernetes client.

This is the single place where kubeconfig is read and the API server is
called, so the inventory pipeline itself stays free of transport details:

- NamespaceResolver finds the namespace of the active (or chosen) context.
- DiscoveryClient fetches the server's preferred API resource lists.
- ObjectLister issues bounded list requests for one resource type.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from kubernetes import config as kube_config
from kubernetes.client import ApiClient, Configuration
from kubernetes.config.config_exception import ConfigException

from kubeinventory.errors import ConfigError, DiscoveryError
from kubeinventory.resources import ResourceCandidate, join_group_version

logger = logging.getLogger(__name__)

_JSON_HEADERS = {"Accept": "application/json"}
_AUTH_SETTINGS = ["BearerToken"]


class NamespaceResolver:
    """
    Resolve the namespace an inventory run targets.

    An explicit namespace wins. Otherwise the namespace comes from the
    chosen context, or from the kubeconfig's current context.
    """

    def __init__(
        self,
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None,
        namespace: Optional[str] = None,
    ):
        self.kubeconfig = kubeconfig
        self.context = context
        self.namespace = namespace

    def resolve(self) -> str:
        """
        Return the target namespace.

        Raises:
            ConfigError: If kubeconfig cannot be read, the context does not
                exist, or the context has no namespace
        """
        if self.namespace:
            return self.namespace

        try:
            contexts, current = kube_config.list_kube_config_contexts(config_file=self.kubeconfig)
        except ConfigException as e:
            raise ConfigError(f"cannot load kubeconfig: {e}") from e
        except OSError as e:
            raise ConfigError(f"cannot read kubeconfig: {e}") from e

        if self.context:
            selected = next((c for c in contexts or [] if c.get("name") == self.context), None)
            if selected is None:
                raise ConfigError(f"context {self.context!r} not found in kubeconfig")
        else:
            selected = current
            if not selected or not selected.get("name"):
                raise ConfigError("current context is empty")

        namespace = (selected.get("context") or {}).get("namespace")
        if not namespace:
            raise ConfigError(f"namespace of context {selected.get('name')!r} is empty")

        logger.debug(f"Namespace of context {selected.get('name')}: {namespace}")
        return namespace


def load_api_client(
    kubeconfig: Optional[str] = None,
    context: Optional[str] = None,
    pool_size: Optional[int] = None,
) -> ApiClient:
    """
    Create an ApiClient from kubeconfig without touching the global client configuration.

    Args:
        kubeconfig: Path to kubeconfig, or None for the client default
        context: Context to load, or None for the current context
        pool_size: Concurrent requests the client must serve without
            discarding connections; raises the connection pool size if needed

    Raises:
        ConfigError: If the kubeconfig or context cannot be loaded
    """
    configuration = Configuration()
    if pool_size and pool_size > (configuration.connection_pool_maxsize or 0):
        configuration.connection_pool_maxsize = pool_size

    try:
        return kube_config.new_client_from_config(
            config_file=kubeconfig, context=context, client_configuration=configuration
        )
    except ConfigException as e:
        raise ConfigError(f"cannot create cluster client: {e}") from e
    except OSError as e:
        raise ConfigError(f"cannot read kubeconfig: {e}") from e


def _get_json(
    api_client: ApiClient,
    path: str,
    path_params: Optional[Dict[str, str]] = None,
    query_params: Optional[List[Tuple[str, Any]]] = None,
    request_timeout: Optional[int] = None,
) -> Any:
    return api_client.call_api(
        path,
        "GET",
        path_params=path_params or {},
        query_params=query_params or [],
        header_params=dict(_JSON_HEADERS),
        response_type="object",
        auth_settings=_AUTH_SETTINGS,
        _return_http_data_only=True,
        _preload_content=True,
        _request_timeout=request_timeout,
    )


def select_preferred_resources(
    groups: List[Dict[str, Any]], fetched: Dict[str, Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """
    Reduce fetched resource lists to one entry per (group, resource).

    A resource served in several versions of a group is kept once, from the
    group's preferred version when that version serves it, otherwise from
    the first version that does. Subresources are dropped.

    Args:
        groups: APIGroup dictionaries, in server order
        fetched: APIResourceList dictionaries keyed by groupVersion

    Returns:
        APIResourceList dictionaries holding only the selected resources
    """
    chosen: Dict[Tuple[str, str], Tuple[str, Dict[str, Any]]] = {}
    order: List[Tuple[str, str]] = []

    for group in groups:
        group_name = group.get("name", "")
        preferred = (group.get("preferredVersion") or {}).get("version")
        for version in group.get("versions") or []:
            group_version = version.get("groupVersion") or join_group_version(
                group_name, version.get("version", "")
            )
            resource_list = fetched.get(group_version)
            if not resource_list:
                continue
            for resource in resource_list.get("resources") or []:
                name = resource.get("name", "")
                if "/" in name:
                    continue
                key = (group_name, name)
                if key in chosen and version.get("version") != preferred:
                    continue
                if key not in chosen:
                    order.append(key)
                chosen[key] = (group_version, resource)

    by_group_version: Dict[str, List[Dict[str, Any]]] = {}
    for key in order:
        group_version, resource = chosen[key]
        by_group_version.setdefault(group_version, []).append(resource)

    return [
        {"groupVersion": group_version, "resources": resources}
        for group_version, resources in by_group_version.items()
    ]


class DiscoveryClient:
    """
    Fetch the API resources the server advertises.

    Results are cached in memory until invalidate() is called.
    """

    def __init__(self, api_client: ApiClient, request_timeout: Optional[int] = None):
        self.api_client = api_client
        self.request_timeout = request_timeout
        self._cache: Optional[Tuple[List[Dict[str, Any]], List[DiscoveryError]]] = None

    def invalidate(self) -> None:
        """Drop cached discovery data so the next call fetches from the server."""
        self._cache = None

    def server_groups(self) -> Tuple[List[Dict[str, Any]], List[DiscoveryError]]:
        """
        Return the core group followed by every named API group.

        /api and /apis are fetched separately; when one fails the groups of
        the other are still returned, along with a DiscoveryError for it.
        """
        groups: List[Dict[str, Any]] = []
        errors: List[DiscoveryError] = []

        try:
            core = _get_json(self.api_client, "/api", request_timeout=self.request_timeout) or {}
        except Exception as e:
            logger.warning(f"Failed to get the core API group: {e}")
            errors.append(DiscoveryError(f"unable to retrieve the server API groups from /api: {e}"))
            core = {}

        core_versions = core.get("versions") or []
        if core_versions:
            groups.append(
                {
                    "name": "",
                    "versions": [{"groupVersion": v, "version": v} for v in core_versions],
                    "preferredVersion": {"groupVersion": core_versions[0], "version": core_versions[0]},
                }
            )

        try:
            named = _get_json(self.api_client, "/apis", request_timeout=self.request_timeout) or {}
        except Exception as e:
            logger.warning(f"Failed to get the named API groups: {e}")
            errors.append(DiscoveryError(f"unable to retrieve the server API groups from /apis: {e}"))
            named = {}

        groups.extend(named.get("groups") or [])
        return groups, errors

    def _resource_path(self, group_version: str) -> str:
        if "/" in group_version:
            return f"/apis/{group_version}"
        return f"/api/{group_version}"

    def server_preferred_resources(self) -> Tuple[List[Dict[str, Any]], List[DiscoveryError]]:
        """
        Return the preferred resource lists and per-group-version failures.

        A failure to fetch a root group list or one group-version does not
        stop discovery; it is returned alongside the lists that were fetched.
        """
        if self._cache is not None:
            return self._cache

        groups, errors = self.server_groups()
        fetched: Dict[str, Dict[str, Any]] = {}

        for group in groups:
            for version in group.get("versions") or []:
                group_version = version.get("groupVersion")
                if not group_version or group_version in fetched:
                    continue
                try:
                    fetched[group_version] = (
                        _get_json(
                            self.api_client,
                            self._resource_path(group_version),
                            request_timeout=self.request_timeout,
                        )
                        or {}
                    )
                except Exception as e:
                    logger.warning(f"Failed to get resources for {group_version}: {e}")
                    errors.append(
                        DiscoveryError(
                            f"unable to retrieve the resources of {group_version}: {e}",
                            group_version=group_version,
                        )
                    )

        resource_lists = select_preferred_resources(groups, fetched)
        logger.debug(f"Discovered {len(resource_lists)} preferred group version(s)")
        self._cache = (resource_lists, errors)
        return self._cache


class ObjectLister:
    """List objects of one resource type in a namespace."""

    def __init__(self, api_client: ApiClient, request_timeout: Optional[int] = None):
        self.api_client = api_client
        self.request_timeout = request_timeout

    @staticmethod
    def resource_path(candidate: ResourceCandidate) -> str:
        if candidate.group:
            return "/apis/{group}/{version}/namespaces/{namespace}/{resource}"
        return "/api/{version}/namespaces/{namespace}/{resource}"

    def list(self, candidate: ResourceCandidate, namespace: str, limit: Optional[int] = None) -> list:
        """
        List objects of the candidate's type in the namespace.

        Args:
            candidate: Resource type to list
            namespace: Namespace to list in
            limit: Maximum number of items to request; None lists everything

        Returns:
            The items of the returned collection

        Raises:
            ApiException: If the server rejects the request
            ValueError: If the response is not a list object
        """
        path_params = {
            "group": candidate.group,
            "version": candidate.version,
            "namespace": namespace,
            "resource": candidate.plural_name,
        }
        query_params = [("limit", limit)] if limit else []
        data = _get_json(
            self.api_client,
            self.resource_path(candidate),
            path_params=path_params,
            query_params=query_params,
            request_timeout=self.request_timeout,
        )
        if not isinstance(data, dict):
            raise ValueError(f"unexpected response listing {candidate.gvk}: {type(data).__name__}")
        return data.get("items") or []


@dataclass(frozen=True)
class ClusterClients:
    discovery: DiscoveryClient
    lister: ObjectLister


def connect(
    kubeconfig: Optional[str] = None,
    context: Optional[str] = None,
    request_timeout: Optional[int] = None,
    workers: int = 1,
) -> ClusterClients:
    """
    Create the discovery client and object lister for a kubeconfig context.

    The lister is shared by every probe worker, so the connection pool is
    sized to hold one connection per worker.

    Raises:
        ConfigError: If the kubeconfig or context cannot be loaded
    """
    api_client = load_api_client(kubeconfig=kubeconfig, context=context, pool_size=workers)
    return ClusterClients(
        discovery=DiscoveryClient(api_client, request_timeout=request_timeout),
        lister=ObjectLister(api_client, request_timeout=request_timeout),
    )
