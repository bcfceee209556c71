# ============================================================================
# WORKLOAD INVENTORY
# ============================================================================
# STATUS: Core - Discovery data source
# PURPOSE: List workloads and their annotations for the reconciler
# CREATED: 10 SEP 2026
# ============================================================================
"""
Workload Inventory

The reconciler only needs one operation:

    workloads = await inventory.list_workloads()

KubernetesInventory lists pods in one namespace through the official
client. StaticInventory serves a fixed, mutable list (tests, dry runs).
"""

import asyncio
from typing import Iterable, List, Optional

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config

from core.logging import ComponentType, get_logger
from core.models import Workload

logger = get_logger(__name__, ComponentType.DISCOVERY)


class WorkloadInventory:
    """Source of workloads for the discovery reconciler."""

    async def list_workloads(self) -> List[Workload]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class StaticInventory(WorkloadInventory):
    """In-memory inventory. ``workloads`` may be replaced between ticks."""

    def __init__(self, workloads: Optional[Iterable[Workload]] = None):
        self.workloads: List[Workload] = list(workloads or [])

    def set(self, workloads: Iterable[Workload]) -> None:
        self.workloads = list(workloads)

    async def list_workloads(self) -> List[Workload]:
        return list(self.workloads)


class KubernetesInventory(WorkloadInventory):
    """
    Pods of one namespace via ``CoreV1Api.list_namespaced_pod``.

    The kubernetes client is synchronous; calls run in a worker thread.

    Args:
        namespace: Namespace to list
        api: Optional preconfigured CoreV1Api (skips config loading)
        label_selector: Optional pod label selector
    """

    def __init__(self, namespace: str = "default", api=None, label_selector: str = ""):
        self.namespace = namespace
        self.label_selector = label_selector
        self._api = api

    def _client(self):
        if self._api is None:
            try:
                k8s_config.load_incluster_config()
                logger.info("Loaded in-cluster Kubernetes config")
            except k8s_config.ConfigException:
                k8s_config.load_kube_config()
                logger.info("Loaded kubeconfig")
            self._api = k8s_client.CoreV1Api()
        return self._api

    def _list(self) -> List[Workload]:
        response = self._client().list_namespaced_pod(
            self.namespace,
            label_selector=self.label_selector,
        )
        return [pod_to_workload(pod) for pod in response.items]

    async def list_workloads(self) -> List[Workload]:
        return await asyncio.to_thread(self._list)

    async def close(self) -> None:
        api, self._api = self._api, None
        if api is not None and getattr(api, "api_client", None) is not None:
            await asyncio.to_thread(api.api_client.close)


def pod_to_workload(pod) -> Workload:
    """Convert a V1Pod into a Workload."""
    metadata = pod.metadata
    status = pod.status
    return Workload(
        name=metadata.name,
        namespace=metadata.namespace or "default",
        phase=(status.phase if status is not None else "") or "",
        annotations=dict(metadata.annotations or {}),
    )


__all__ = [
    "WorkloadInventory",
    "StaticInventory",
    "KubernetesInventory",
    "pod_to_workload",
]
