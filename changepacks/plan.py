"""Update-plan builder.

Turns the recorded changepack entries into one bump per project:

1. Merge entries, keeping the strongest kind per path and every note.
2. Apply ``updateOn`` rules: when a plan key matches a trigger glob, the
   forced paths get a Patch bump unless they are already planned.
3. Close over reverse dependencies: every project depending on a planned
   project gets a Patch bump, transitively.

Crates that inherit their workspace version are never planned on their
own; their bumps are redirected to the workspace root manifest.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from collections import deque
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from .graph import ProjectIndex, reverse_dependencies
from .models import BumpKind, ChangeLogEntry, ChangepackResult, Config, ResultLog
from .project import Project
from .versions import next_version

logger = logging.getLogger(__name__)


@dataclass
class PlanEntry:
    kind: BumpKind
    logs: list[ResultLog] = field(default_factory=list)

    def add(self, kind: BumpKind, note: str) -> None:
        self.logs.append(ResultLog(type=kind, note=note))
        self.kind = BumpKind.strongest(self.kind, kind)


UpdatePlan = dict[str, PlanEntry]


def normalize_path(path: str) -> str:
    """Repository-relative paths are compared in POSIX form."""
    return PurePosixPath(path.replace("\\", "/")).as_posix()


def _inherited_roots(projects: list[Project]) -> dict[str, str | None]:
    """Map inheriting crates' paths to their workspace root's path."""
    roots: dict[str, str | None] = {}
    for project in projects:
        if project.inherits_workspace_version:
            root = getattr(project.manifest, "workspace_root", None)
            roots[project.rel_path] = root.rel_path if root is not None else None
    return roots


class PlanBuilder:
    def __init__(self, config: Config, projects: list[Project]) -> None:
        self.config = config
        self.projects = projects
        self.index = ProjectIndex(projects)
        self.redirects = _inherited_roots(projects)

    def key_for(self, path: str) -> str | None:
        key = normalize_path(path)
        if key in self.redirects:
            target = self.redirects[key]
            if target is None:
                logger.warning("dropping %s: workspace root for inherited version not found", key)
            return target
        return key

    def merge_entries(self, entries: list[ChangeLogEntry]) -> UpdatePlan:
        plan: UpdatePlan = {}
        for entry in entries:
            for path, kind in entry.changes.items():
                key = self.key_for(path)
                if key is None:
                    continue
                if key in plan:
                    plan[key].add(kind, entry.note)
                else:
                    plan[key] = PlanEntry(kind, [ResultLog(type=kind, note=entry.note)])
        return plan

    def apply_update_on(self, plan: UpdatePlan) -> None:
        triggered_keys = list(plan)
        for trigger, forced_paths in self.config.update_on.items():
            try:
                pattern = re.compile(fnmatch.translate(normalize_path(trigger)))
            except re.error:
                logger.debug("skipping invalid updateOn glob %r", trigger)
                continue
            matched = next((key for key in triggered_keys if pattern.match(key)), None)
            if matched is None:
                continue
            for forced in forced_paths:
                key = self.key_for(forced)
                if key is None or key in plan:
                    continue
                plan[key] = PlanEntry(
                    BumpKind.PATCH,
                    [
                        ResultLog(
                            type=BumpKind.PATCH,
                            note=f"Auto-update: '{matched}' matched updateOn rule '{trigger}'",
                        )
                    ],
                )

    def expand_dependents(self, plan: UpdatePlan) -> None:
        reverse = reverse_dependencies(self.projects)
        members: dict[str, list[str]] = {}
        for member, root in self.redirects.items():
            if root is not None:
                members.setdefault(root, []).append(member)

        visited = set(plan)
        worklist = deque(plan)
        while worklist:
            path = worklist.popleft()
            for source in [path, *members.get(path, [])]:
                dep = self.index.by_path.get(source)
                dep_name = dep.name if dep is not None and dep.name else source
                for dependent in reverse.get(source, []):
                    key = self.key_for(dependent.rel_path)
                    if key is None or key in visited:
                        continue
                    visited.add(key)
                    if key not in plan:
                        note = f"Auto-update: depends on '{dep_name}' via workspace:*"
                        plan[key] = PlanEntry(
                            BumpKind.PATCH, [ResultLog(type=BumpKind.PATCH, note=note)]
                        )
                    worklist.append(key)

    def build(self, entries: list[ChangeLogEntry]) -> UpdatePlan:
        plan = self.merge_entries(entries)
        self.apply_update_on(plan)
        self.expand_dependents(plan)
        logger.debug("plan: %s", {key: entry.kind.value for key, entry in plan.items()})
        return plan


def build_plan(
    entries: list[ChangeLogEntry], config: Config, projects: list[Project]
) -> UpdatePlan:
    """Merge entries, apply updateOn rules and expand to dependents."""
    return PlanBuilder(config, projects).build(entries)


def planned_projects(plan: UpdatePlan, projects: list[Project]) -> list[tuple[Project, PlanEntry]]:
    """Projects that the plan bumps, in project order."""
    return [(p, plan[p.rel_path]) for p in projects if p.rel_path in plan]


def changepack_results(
    projects: list[Project], plan: UpdatePlan
) -> dict[str, ChangepackResult]:
    """Build the per-project JSON documents for check and update."""
    results = {}
    for project in projects:
        entry = plan.get(project.rel_path)
        results[project.rel_path] = ChangepackResult(
            logs=list(entry.logs) if entry else [],
            version=project.version,
            next_version=next_version(project.version, entry.kind) if entry else None,
            name=project.name,
            changed=project.is_changed,
            path=project.rel_path,
        )
    return results
