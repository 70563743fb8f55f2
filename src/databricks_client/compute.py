"""
Cluster (compute) lifecycle operations.

NOTE: Only import from workspace and config (lower layers).
"""
import logging
from typing import Dict, List, Optional

from databricks.sdk.service.compute import ClusterDetails

from .workspace import ResourceClient, api_call

logger = logging.getLogger(__name__)


class Compute(ResourceClient):
    """
    Thin wrapper over the Clusters API.

    Lifecycle calls return as soon as the request is accepted; they do not
    wait for the cluster to reach its target state.
    """

    @api_call("list_compute")
    def list_compute(self) -> List[ClusterDetails]:
        return list(self._client.clusters.list())

    @api_call("get_compute")
    def get_compute(self, cluster_id: str) -> ClusterDetails:
        return self._client.clusters.get(cluster_id=cluster_id)

    @api_call("create_compute")
    def create_compute(
        self,
        cluster_name: str,
        spark_version: str,
        node_type_id: str,
        num_workers: int = 0,
        custom_tags: Optional[Dict[str, str]] = None,
    ) -> str:
        """Request a new cluster and return its cluster_id."""
        waiter = self._client.clusters.create(
            cluster_name=cluster_name,
            spark_version=spark_version,
            node_type_id=node_type_id,
            num_workers=num_workers,
            custom_tags=custom_tags,
        )
        logger.info(f"Requested cluster '{cluster_name}' ({waiter.cluster_id})")
        return waiter.cluster_id

    @api_call("start_compute")
    def start_compute(self, cluster_id: str) -> None:
        self._client.clusters.start(cluster_id=cluster_id)
        logger.info(f"Start requested for cluster {cluster_id}")

    @api_call("terminate_compute")
    def terminate_compute(self, cluster_id: str) -> None:
        """Terminate (not permanently delete) a cluster."""
        self._client.clusters.delete(cluster_id=cluster_id)
        logger.info(f"Termination requested for cluster {cluster_id}")

    @api_call("restart_compute")
    def restart_compute(self, cluster_id: str) -> None:
        self._client.clusters.restart(cluster_id=cluster_id)
        logger.info(f"Restart requested for cluster {cluster_id}")
