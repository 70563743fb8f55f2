"""
Job and run operations.

NOTE: Only import from workspace and config (lower layers).
"""
import itertools
import logging
from typing import Dict, List, Optional

from databricks.sdk.service.jobs import BaseJob, BaseRun, Job

from .workspace import ResourceClient, api_call

logger = logging.getLogger(__name__)

# Page size ceilings enforced by the Jobs API.
MAX_JOBS_PAGE = 100
MAX_RUNS_PAGE = 25


class Jobs(ResourceClient):
    """Thin wrapper over the Jobs API."""

    @api_call("list_jobs")
    def list_jobs(self, limit: int = 25, offset: int = 0) -> List[BaseJob]:
        """
        List up to `limit` jobs starting at `offset`.

        The SDK iterator pages transparently; the result is truncated to
        `limit` entries.
        """
        if limit <= 0:
            return []
        jobs_iterator = self._client.jobs.list(
            limit=min(limit, MAX_JOBS_PAGE),
            offset=offset,
        )
        return list(itertools.islice(jobs_iterator, limit))

    @api_call("get_job")
    def get_job(self, job_id: int) -> Job:
        return self._client.jobs.get(job_id=job_id)

    @api_call("list_runs")
    def list_runs(self, job_id: Optional[int] = None, limit: int = 25) -> List[BaseRun]:
        if limit <= 0:
            return []
        runs_iterator = self._client.jobs.list_runs(
            job_id=job_id,
            limit=min(limit, MAX_RUNS_PAGE),
        )
        return list(itertools.islice(runs_iterator, limit))

    @api_call("run_now")
    def run_now(
        self, job_id: int, notebook_params: Optional[Dict[str, str]] = None
    ) -> int:
        """Trigger a run and return its run_id without waiting for completion."""
        waiter = self._client.jobs.run_now(
            job_id=job_id,
            notebook_params=notebook_params or None,
        )
        logger.info(f"Triggered run {waiter.run_id} of job {job_id}")
        return waiter.run_id
