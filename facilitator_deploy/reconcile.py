"""Smart reload: restart only the services whose config files changed.

One invocation walks Idle -> Fingerprinting -> (NoChange | Restarting ->
Snapshotting) -> Idle. Nothing but the on-disk snapshot survives between runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set

from .errors import ReconcileRestartError
from .snapshot import Snapshot, compute_snapshot, diff_snapshots, load_snapshot, save_snapshot

logger = logging.getLogger(__name__)

RestartFn = Callable[[str], None]


class ReconcilePhase(str, Enum):
    IDLE = "idle"
    FINGERPRINTING = "fingerprinting"
    NO_CHANGE = "no_change"
    RESTARTING = "restarting"
    SNAPSHOTTING = "snapshotting"


@dataclass(frozen=True)
class ReconcilePlan:
    changed: List[str]
    restart_set: List[str]
    current: Snapshot
    recorded: Optional[Snapshot]


@dataclass
class ReconcileResult:
    changed: List[str] = field(default_factory=list)
    restart_set: List[str] = field(default_factory=list)
    restarted: List[str] = field(default_factory=list)
    failed: List[ReconcileRestartError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def no_change(self) -> bool:
        return not self.restart_set


def restart_set_for(changed: Sequence[str], dependencies: Mapping[str, Sequence[str]]) -> List[str]:
    services: Set[str] = set()
    for name in changed:
        services.update(dependencies.get(name) or [])
    return sorted(services)


class ConfigReconciler:
    def __init__(
        self,
        *,
        deploy_dir: str,
        dependencies: Mapping[str, Sequence[str]],
        snapshot_path: str,
        restart: RestartFn,
    ) -> None:
        self.deploy_dir = deploy_dir
        self.dependencies: Dict[str, List[str]] = {k: list(v) for k, v in dependencies.items()}
        self.snapshot_path = snapshot_path
        self.restart = restart
        self.phase = ReconcilePhase.IDLE

    @property
    def tracked(self) -> List[str]:
        return list(self.dependencies)

    def plan(self) -> ReconcilePlan:
        self.phase = ReconcilePhase.FINGERPRINTING
        recorded = load_snapshot(self.snapshot_path)
        if recorded is None:
            logger.info("No config snapshot at %s; treating every tracked file as changed", self.snapshot_path)
        current = compute_snapshot(self.deploy_dir, self.tracked)
        changed = diff_snapshots(recorded, current, self.tracked)
        return ReconcilePlan(
            changed=changed,
            restart_set=restart_set_for(changed, self.dependencies),
            current=current,
            recorded=recorded,
        )

    def reconcile(self, *, dry_run: bool = False) -> ReconcileResult:
        try:
            plan = self.plan()
            result = ReconcileResult(changed=list(plan.changed), restart_set=list(plan.restart_set))

            if not plan.restart_set:
                self.phase = ReconcilePhase.NO_CHANGE
                if plan.changed and not dry_run:
                    # Changed files with no dependent service only need re-recording.
                    logger.info("Changed without dependents: %s", ", ".join(plan.changed))
                    self.phase = ReconcilePhase.SNAPSHOTTING
                    save_snapshot(self.snapshot_path, plan.current)
                else:
                    logger.info("No config changes detected")
                return result

            logger.info("Changed: %s -> restarting %s", ", ".join(plan.changed), ", ".join(plan.restart_set))
            if dry_run:
                logger.info("Dry run: nothing restarted")
                return result

            self.phase = ReconcilePhase.RESTARTING
            for service in plan.restart_set:
                try:
                    self.restart(service)
                except (RuntimeError, OSError) as e:
                    err = ReconcileRestartError(service, str(e))
                    logger.warning("%s", err)
                    result.failed.append(err)
                else:
                    logger.info("Restarted %s", service)
                    result.restarted.append(service)

            self.phase = ReconcilePhase.SNAPSHOTTING
            save_snapshot(self.snapshot_path, self._settled_snapshot(plan, result))
            return result
        finally:
            self.phase = ReconcilePhase.IDLE

    def _settled_snapshot(self, plan: ReconcilePlan, result: ReconcileResult) -> Snapshot:
        """Fresh fingerprints, except files whose dependents failed keep the old entry."""

        failed = {e.service for e in result.failed}
        snap = compute_snapshot(self.deploy_dir, self.tracked)
        recorded = plan.recorded or {}
        for name in plan.changed:
            if failed.intersection(self.dependencies.get(name) or []):
                if name in recorded:
                    snap[name] = recorded[name]
                else:
                    snap.pop(name, None)
        return snap
