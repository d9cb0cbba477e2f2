"""Dependency graph utilities.

Projects are kept in a flat list. Edges are resolved on demand from each
project's dependency identifiers, which may be project names or
repository-relative manifest paths. Provides the publish ordering, the
reverse-dependency index used by the plan builder, and the tree printed by
``check --tree``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from .project import Project


class ProjectIndex:
    """Look up projects by name or by relative manifest path."""

    def __init__(self, projects: Iterable[Project]) -> None:
        self.by_name: dict[str, Project] = {}
        self.by_path: dict[str, Project] = {}
        for project in projects:
            if project.name is not None:
                self.by_name.setdefault(project.name, project)
            self.by_path[project.rel_path] = project

    def resolve(self, identifier: str) -> Project | None:
        return self.by_name.get(identifier) or self.by_path.get(identifier)

    def dependencies_of(self, project: Project) -> list[Project]:
        """Resolved intra-repo dependencies, excluding the project itself."""
        resolved = []
        for identifier in sorted(project.dependencies):
            dep = self.resolve(identifier)
            if dep is not None and dep is not project and dep not in resolved:
                resolved.append(dep)
        return resolved


def reverse_dependencies(projects: list[Project]) -> dict[str, list[Project]]:
    """Map each depended-upon project's relative path to its dependents."""
    index = ProjectIndex(projects)
    reverse: dict[str, list[Project]] = {}
    for project in projects:
        for dep in index.dependencies_of(project):
            reverse.setdefault(dep.rel_path, []).append(project)
    return reverse


def sort_by_dependencies(projects: list[Project]) -> list[Project]:
    """Topologically sort projects by their intra-repo dependencies.

    Uses Kahn's algorithm so that when A depends on B, B comes first.
    Projects that become ready at the same time keep their input order.
    Projects caught in a dependency cycle can never become ready; they are
    appended at the end in input order so every project is returned once.

    Example:
        If A depends on B, and B depends on C:
        sort_by_dependencies([A, B, C]) → [C, B, A]
    """
    index = ProjectIndex(projects)
    position = {id(p): i for i, p in enumerate(projects)}
    # Count incoming edges (dependencies) for each project
    in_degree = {id(p): 0 for p in projects}
    # Track reverse dependencies (who depends on each project)
    dependents: dict[int, list[Project]] = {id(p): [] for p in projects}

    for project in projects:
        for dep in index.dependencies_of(project):
            if id(dep) in in_degree:
                in_degree[id(project)] += 1
                dependents[id(dep)].append(project)

    ready = [p for p in projects if in_degree[id(p)] == 0]
    order: list[Project] = []
    while ready:
        project = ready.pop(0)
        order.append(project)
        newly_ready = []
        for dependent in dependents[id(project)]:
            in_degree[id(dependent)] -= 1
            if in_degree[id(dependent)] == 0:
                newly_ready.append(dependent)
        ready.extend(newly_ready)
        ready.sort(key=lambda p: position[id(p)])

    if len(order) != len(projects):
        seen = {id(p) for p in order}
        order.extend(p for p in projects if id(p) not in seen)
    return order


def render_tree(projects: list[Project], label: Callable[[Project], str]) -> list[str]:
    """Render projects as a dependency tree.

    Roots are the projects no other project depends on; each node's
    children are its dependencies. A project that was already expanded is
    printed again as a plain reference without its children, which keeps
    cycles finite. Projects only reachable through a cycle are rendered as
    extra roots so that every project appears at least once.
    """
    index = ProjectIndex(projects)
    depended_upon = {
        id(dep) for project in projects for dep in index.dependencies_of(project)
    }
    roots = [p for p in projects if id(p) not in depended_upon]
    expanded: set[int] = set()
    lines: list[str] = []

    def walk(project: Project, prefix: str, connector: str, child_prefix: str) -> None:
        if id(project) in expanded:
            lines.append(f"{prefix}{connector}{label(project)} (*)")
            return
        lines.append(f"{prefix}{connector}{label(project)}")
        expanded.add(id(project))
        children = index.dependencies_of(project)
        for i, child in enumerate(children):
            last = i == len(children) - 1
            walk(
                child,
                prefix + child_prefix,
                "└── " if last else "├── ",
                "    " if last else "│   ",
            )

    for root in roots:
        walk(root, "", "", "")
    for project in projects:
        if id(project) not in expanded:
            walk(project, "", "", "")
    return lines
