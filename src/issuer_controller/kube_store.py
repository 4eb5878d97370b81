"""Object store backed by the Kubernetes API.

CertificateRequests and issuers are custom resources accessed through
``CustomObjectsApi`` (raw ``dict`` objects); secrets come from ``CoreV1Api``.
"""

import logging
from typing import Any, Dict, Optional, Type

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from issuer_api.constants import (
    API_GROUP,
    API_VERSION,
    CERT_MANAGER_GROUP,
    CERT_MANAGER_VERSION,
    CERTIFICATE_REQUEST_PLURAL,
    ISSUER_PLURALS,
)
from issuer_api.types import CertificateRequest, ClusterIssuer, Issuer, Secret

from .store import ConflictError, NamespacedName, NotFoundError, StoreError, StoredObject, T, kind_of

logger = logging.getLogger(__name__)


def load_kube_config(in_cluster: bool, kubeconfig: Optional[str] = None) -> None:
    """Load in-cluster or kubeconfig credentials for the API client."""
    if in_cluster:
        config.load_incluster_config()
    else:
        config.load_kube_config(config_file=kubeconfig)


def _translate(e: ApiException, kind: str, key: NamespacedName) -> StoreError:
    if e.status == 404:
        return NotFoundError(f'{kind} "{key}" not found')
    if e.status == 409:
        return ConflictError(f'{kind} "{key}": {e.reason}')
    return StoreError(f'{kind} "{key}": {e.status} {e.reason}')


class KubernetesObjectStore:
    """Reads and writes controller objects through the Kubernetes API."""

    def __init__(self, api_client: Optional[client.ApiClient] = None):
        self.api_client = api_client or client.ApiClient()
        self.custom_objects = client.CustomObjectsApi(self.api_client)
        self.core = client.CoreV1Api(self.api_client)

    def _coordinates(self, kind: str):
        if kind == "CertificateRequest":
            return CERT_MANAGER_GROUP, CERT_MANAGER_VERSION, CERTIFICATE_REQUEST_PLURAL
        return API_GROUP, API_VERSION, ISSUER_PLURALS[kind]

    def _get_custom(self, kind: str, key: NamespacedName) -> Dict[str, Any]:
        group, version, plural = self._coordinates(kind)
        if key.namespace:
            return self.custom_objects.get_namespaced_custom_object(group, version, key.namespace, plural, key.name)
        return self.custom_objects.get_cluster_custom_object(group, version, plural, key.name)

    def get(self, model: Type[T], key: NamespacedName) -> T:
        kind = kind_of(model)
        try:
            if model is Secret:
                secret = self.core.read_namespaced_secret(key.name, key.namespace)
                return Secret.from_k8s_object(self.api_client.sanitize_for_serialization(secret))
            return model.from_k8s_object(self._get_custom(kind, key))
        except ApiException as e:
            raise _translate(e, kind, key) from e

    def _replace(self, obj: StoredObject, status: bool) -> None:
        kind = kind_of(obj)
        key = NamespacedName(obj.metadata.namespace, obj.metadata.name)
        group, version, plural = self._coordinates(kind)
        # The body is the object as read with our changes laid over it; a
        # CertificateRequest spec is immutable and must go back unchanged.
        body = obj.status_update_object() if status else obj.metadata_update_object()
        try:
            if status and key.namespace:
                result = self.custom_objects.replace_namespaced_custom_object_status(
                    group, version, key.namespace, plural, key.name, body)
            elif status:
                result = self.custom_objects.replace_cluster_custom_object_status(
                    group, version, plural, key.name, body)
            elif key.namespace:
                result = self.custom_objects.replace_namespaced_custom_object(
                    group, version, key.namespace, plural, key.name, body)
            else:
                result = self.custom_objects.replace_cluster_custom_object(group, version, plural, key.name, body)
        except ApiException as e:
            raise _translate(e, kind, key) from e

        obj.metadata.resource_version = result.get("metadata", {}).get("resourceVersion")

    def update(self, obj: StoredObject) -> None:
        if isinstance(obj, Secret):
            raise StoreError("secrets are read-only for this controller")
        self._replace(obj, status=False)

    def update_status(self, obj: StoredObject) -> None:
        if not isinstance(obj, (CertificateRequest, Issuer, ClusterIssuer)):
            raise StoreError(f"{kind_of(obj)} has no status sub-resource")
        self._replace(obj, status=True)
