"""Java projects (build.gradle / build.gradle.kts).

Gradle names and versions frequently come from gradle.properties, plugins
or ``project.findProperty``, so the repository's gradlew wrapper is asked
for ``properties -q`` first. Without a working wrapper the directory name
is used and the version is read from the build file when it is a literal.
"""

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path

from ..errors import ManifestWriteError
from ..models import Language
from ..project import Manifest, Project, ProjectKind
from ..shell import capture
from .base import ProjectFinder, read_manifest, write_manifest

logger = logging.getLogger(__name__)

SETTINGS_FILES = ("settings.gradle", "settings.gradle.kts")

KTS_PATTERNS = (
    re.compile(r'^(version\s*=\s*)(")([^"]+)"', re.MULTILINE),
    re.compile(
        r'^(version\s*=\s*project\.findProperty\([^)]+\)\s*\?:\s*)(")([^"]+)"',
        re.MULTILINE,
    ),
)
GROOVY_PATTERNS = (
    re.compile(r"^(version\s*=\s*)(['\"])([^'\"]+)\2", re.MULTILINE),
    re.compile(r"^(version\s+)(['\"])([^'\"]+)\2", re.MULTILINE),
)

_PROJECT_REF_RE = re.compile(r"project\(\s*(?:path\s*[:=]\s*)?[\"']([^\"']+)[\"']\s*\)")


def version_patterns(path: Path) -> tuple[re.Pattern, ...]:
    return KTS_PATTERNS if path.name.endswith(".kts") else GROOVY_PATTERNS


def find_gradlew(directory: Path, root: Path) -> Path | None:
    """Look for the wrapper script from directory up to the repository root."""
    script = "gradlew.bat" if sys.platform == "win32" else "gradlew"
    current = directory
    while True:
        candidate = current / script
        if candidate.is_file():
            return candidate
        if current == root or current.parent == current:
            return None
        current = current.parent


def parse_gradle_properties(output: str) -> tuple[str | None, str | None]:
    """Pull ``name`` and ``version`` out of ``gradlew properties -q`` output."""
    found: dict[str, str | None] = {"name": None, "version": None}
    for line in output.splitlines():
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or key not in found or found[key] is not None:
            continue
        value = value.strip()
        found[key] = value if value and value != "unspecified" else None
    return found["name"], found["version"]


def gradle_properties(directory: Path, root: Path) -> tuple[str | None, str | None]:
    gradlew = find_gradlew(directory, root)
    if gradlew is None:
        return None, None
    try:
        result = capture(str(gradlew), "properties", "-q", cwd=directory)
    except OSError as exc:
        logger.debug("could not run %s: %s", gradlew, exc)
        return None, None
    if result.returncode != 0:
        logger.debug("%s properties failed: %s", gradlew, result.stderr.strip())
        return None, None
    return parse_gradle_properties(result.stdout)


def read_literal_version(text: str, path: Path) -> str | None:
    for pattern in version_patterns(path):
        match = pattern.search(text)
        if match:
            return match.group(3)
    return None


class JavaManifest(Manifest):
    language = Language.JAVA

    def write_version(self, new_version: str) -> None:
        text = read_manifest(self.path, self.rel_path)
        for pattern in version_patterns(self.path):
            new_text, count = pattern.subn(
                lambda m: f"{m.group(1)}{m.group(2)}{new_version}{m.group(2)}",
                text,
                count=1,
            )
            if count:
                write_manifest(self.path, self.rel_path, new_text)
                return
        raise ManifestWriteError(f"No version declaration found in {self.rel_path}")

    def default_publish_command(self) -> str:
        return "./gradlew publish"


class JavaFinder(ProjectFinder):
    language = Language.JAVA
    project_files = ("build.gradle", "build.gradle.kts")

    def parse(self, path: Path, rel_path: str) -> Project:
        text = read_manifest(path, rel_path)
        name, version = gradle_properties(path.parent, self.root)
        if name is None:
            name = path.parent.name
        if version is None:
            version = read_literal_version(text, path)
        dependencies = {
            ref.rsplit(":", 1)[-1] for ref in _PROJECT_REF_RE.findall(text)
        } - {name}
        manifest = JavaManifest(
            path, rel_path, name=name, version=version, dependencies=dependencies
        )
        is_workspace = any((path.parent / settings).is_file() for settings in SETTINGS_FILES)
        kind = ProjectKind.WORKSPACE if is_workspace else ProjectKind.PACKAGE
        return Project(kind, manifest)
