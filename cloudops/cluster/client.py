"""Kubernetes API client loading and connectivity check."""

from dataclasses import dataclass
from typing import Optional

import structlog
import yaml
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

logger = structlog.get_logger(__name__)


class ClusterConnectionError(Exception):
    """Raised when no cluster configuration is usable or the API server is unreachable."""


@dataclass
class ClusterClients:
    """API clients sharing one configured ApiClient."""

    core: client.CoreV1Api
    batch: client.BatchV1Api
    context: str


def connect(kubeconfig: Optional[str] = None, context: Optional[str] = None) -> ClusterClients:
    """Load cluster configuration and verify the API server answers.

    Tries the kubeconfig (``kubeconfig`` path or $KUBECONFIG / ~/.kube/config)
    first and falls back to in-cluster service account configuration.

    Raises:
        ClusterConnectionError: If no configuration loads or the server is unreachable
    """
    api_client = client.ApiClient(configuration=_load_configuration(kubeconfig, context))
    context_name = _current_context_name(kubeconfig, context)

    try:
        version = client.VersionApi(api_client).get_code()
    except (ApiException, HTTPError, OSError) as e:
        raise ClusterConnectionError(f"Cannot connect to Kubernetes cluster: {e}") from e

    logger.info("Connected to cluster", context=context_name, server_version=version.git_version)
    return ClusterClients(
        core=client.CoreV1Api(api_client),
        batch=client.BatchV1Api(api_client),
        context=context_name,
    )


def _load_configuration(kubeconfig: Optional[str], context: Optional[str]) -> client.Configuration:
    configuration = client.Configuration()
    try:
        config.load_kube_config(config_file=kubeconfig, context=context, client_configuration=configuration)
        return configuration
    except (ConfigException, OSError, yaml.YAMLError) as kube_error:
        if kubeconfig or context:
            raise ClusterConnectionError(f"Failed to load kubeconfig: {kube_error}") from kube_error
        logger.debug("No usable kubeconfig, trying in-cluster configuration", error=str(kube_error))

    try:
        config.load_incluster_config(client_configuration=configuration)
    except ConfigException as e:
        raise ClusterConnectionError(f"No Kubernetes configuration found: {e}") from e
    return configuration


def _current_context_name(kubeconfig: Optional[str], context: Optional[str]) -> str:
    if context:
        return context
    try:
        _, active = config.list_kube_config_contexts(config_file=kubeconfig)
    except (ConfigException, OSError, yaml.YAMLError):
        return "in-cluster"
    return active["name"] if active else "unknown"
