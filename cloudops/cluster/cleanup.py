"""Stale resource cleanup for Kubernetes clusters.

Each action lists candidates with a field selector, filters them client-side
where the API cannot (pod reason, Job ownership), and deletes them one by one.
Listing and delete failures are logged and never stop the run.
"""

from typing import Callable, Optional

import structlog
from kubernetes import client
from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from .client import ClusterClients
from .models import CleanupAction, CleanupResult, CleanupTarget

logger = structlog.get_logger(__name__)

EVICTED_REASON = "Evicted"
FOREGROUND_PROPAGATION = "Foreground"


class ClusterCleaner:
    """Runs cleanup actions against one cluster.

    Args:
        clients: Connected API clients
        namespace: Restrict pod and Job actions to one namespace (None: all namespaces)
        dry_run: Only report what would be deleted
        verbose: Log every candidate and, for stuck namespaces, their status conditions
    """

    def __init__(
        self,
        clients: ClusterClients,
        namespace: Optional[str] = None,
        dry_run: bool = False,
        verbose: bool = False,
    ):
        self.core = clients.core
        self.batch = clients.batch
        self.namespace = namespace
        self.dry_run = dry_run
        self.verbose = verbose

        self._handlers: dict[CleanupAction, Callable[[], CleanupResult]] = {
            CleanupAction.EVICTED: self.clean_evicted,
            CleanupAction.FAILED: self.clean_failed,
            CleanupAction.COMPLETED: self.clean_completed,
            CleanupAction.JOBS: self.clean_jobs,
            CleanupAction.STUCK_NAMESPACES: self.clean_stuck_namespaces,
        }

    def run(self, actions: list[CleanupAction]) -> list[CleanupResult]:
        return [self._handlers[action]() for action in actions]

    # Discovery

    def _list_pods(self, phase: str) -> list[client.V1Pod]:
        selector = f"status.phase={phase}"
        if self.namespace:
            response = self.core.list_namespaced_pod(self.namespace, field_selector=selector)
        else:
            response = self.core.list_pod_for_all_namespaces(field_selector=selector)
        return response.items or []

    def find_evicted_pods(self) -> list[CleanupTarget]:
        return [
            _pod_target(pod) for pod in self._list_pods("Failed") if (pod.status and pod.status.reason) == EVICTED_REASON
        ]

    def find_failed_pods(self) -> list[CleanupTarget]:
        """Failed pods other than evicted ones (Error, OOMKilled, ...)."""
        return [
            _pod_target(pod) for pod in self._list_pods("Failed") if (pod.status and pod.status.reason) != EVICTED_REASON
        ]

    def find_completed_pods(self) -> list[CleanupTarget]:
        return [_pod_target(pod) for pod in self._list_pods("Succeeded")]

    def find_orphaned_jobs(self) -> list[CleanupTarget]:
        """Succeeded Jobs without ownerReferences; CronJob-managed Jobs are left alone."""
        if self.namespace:
            response = self.batch.list_namespaced_job(self.namespace)
        else:
            response = self.batch.list_job_for_all_namespaces()

        targets = []
        for job in response.items or []:
            succeeded = job.status.succeeded if job.status else None
            if not succeeded or succeeded <= 0:
                continue
            if job.metadata.owner_references:
                continue
            targets.append(CleanupTarget(name=job.metadata.name, namespace=job.metadata.namespace))
        return targets

    def find_stuck_namespaces(self) -> list[CleanupTarget]:
        response = self.core.list_namespace(field_selector="status.phase=Terminating")
        return [CleanupTarget(name=ns.metadata.name) for ns in response.items or []]

    # Actions

    def clean_evicted(self) -> CleanupResult:
        return self._clean_pods(CleanupAction.EVICTED, self.find_evicted_pods, grace_period_seconds=0)

    def clean_failed(self) -> CleanupResult:
        return self._clean_pods(CleanupAction.FAILED, self.find_failed_pods, grace_period_seconds=0)

    def clean_completed(self) -> CleanupResult:
        return self._clean_pods(CleanupAction.COMPLETED, self.find_completed_pods)

    def clean_jobs(self) -> CleanupResult:
        def delete(target: CleanupTarget) -> None:
            self.batch.delete_namespaced_job(
                target.name, target.namespace, propagation_policy=FOREGROUND_PROPAGATION
            )

        return self._clean(CleanupAction.JOBS, self.find_orphaned_jobs, delete)

    def clean_stuck_namespaces(self) -> CleanupResult:
        """Clear finalizers on namespaces stuck in Terminating.

        Removing finalizers skips whatever cleanup they guard; resources left
        in the namespace are orphaned.
        """
        return self._clean(
            CleanupAction.STUCK_NAMESPACES,
            self.find_stuck_namespaces,
            self._remove_namespace_finalizers,
            before_delete=self._warn_finalizer_removal,
        )

    def _clean_pods(
        self,
        action: CleanupAction,
        finder: Callable[[], list[CleanupTarget]],
        grace_period_seconds: Optional[int] = None,
    ) -> CleanupResult:
        def delete(target: CleanupTarget) -> None:
            if grace_period_seconds is None:
                self.core.delete_namespaced_pod(target.name, target.namespace)
            else:
                self.core.delete_namespaced_pod(
                    target.name, target.namespace, grace_period_seconds=grace_period_seconds
                )

        return self._clean(action, finder, delete)

    def _clean(
        self,
        action: CleanupAction,
        finder: Callable[[], list[CleanupTarget]],
        delete: Callable[[CleanupTarget], None],
        before_delete: Optional[Callable[[list[CleanupTarget]], None]] = None,
    ) -> CleanupResult:
        result = CleanupResult(action=action, dry_run=self.dry_run)
        log = logger.bind(action=action.value)

        log.info(f"Finding {action.description}")
        try:
            result.found = finder()
        except (ApiException, HTTPError) as e:
            log.warning(f"Failed to list {action.description}", error=_api_error_message(e))
            return result

        if not result.found:
            log.info(f"No {action.description} found")
            return result

        log.info(f"Found {len(result.found)} {action.description}")
        if self.verbose:
            for target in result.found:
                log.info("Candidate", target=str(target))

        if before_delete:
            before_delete(result.found)

        if self.dry_run:
            log.warning(f"[DRY-RUN] Would delete {len(result.found)} {action.description}")
            return result

        for target in result.found:
            try:
                delete(target)
            except (ApiException, HTTPError) as e:
                result.failed.append(target)
                log.warning("Failed to delete", target=str(target), error=_api_error_message(e))
            else:
                result.deleted.append(target)
                log.info("Deleted", target=str(target))

        return result

    def _warn_finalizer_removal(self, targets: list[CleanupTarget]) -> None:
        logger.warning("This will remove finalizers - ensure no critical resources remain!")
        if self.verbose:
            for target in targets:
                self._log_blocking_conditions(target.name)

    def _log_blocking_conditions(self, name: str) -> None:
        try:
            namespace = self.core.read_namespace(name)
        except (ApiException, HTTPError) as e:
            logger.debug("Could not read namespace status", namespace=name, error=_api_error_message(e))
            return

        for condition in (namespace.status.conditions if namespace.status else None) or []:
            if condition.status == "True":
                logger.info(
                    "Namespace blocked",
                    namespace=name,
                    condition=condition.type,
                    reason=condition.reason,
                    message=condition.message,
                )

    def _remove_namespace_finalizers(self, target: CleanupTarget) -> None:
        namespace = self.core.read_namespace(target.name)
        if namespace.spec is None:
            namespace.spec = client.V1NamespaceSpec()
        namespace.spec.finalizers = []
        self.core.replace_namespace_finalize(target.name, namespace)


def _pod_target(pod: client.V1Pod) -> CleanupTarget:
    return CleanupTarget(name=pod.metadata.name, namespace=pod.metadata.namespace)


def _api_error_message(error: Exception) -> str:
    if isinstance(error, ApiException):
        return f"{error.status} {error.reason}"
    return str(error)
