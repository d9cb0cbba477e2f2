"""C# projects (*.csproj).

A .csproj next to a solution file is treated as the workspace root. The
project name is the file stem; the version lives in
``<PropertyGroup><Version>``. Edits are made on the raw text so the XML
declaration, comments and attribute quoting survive untouched.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from pathlib import Path, PureWindowsPath

from ..errors import ManifestParseError
from ..models import Language
from ..project import Manifest, Project, ProjectKind
from .base import ProjectFinder, detect_indent, read_manifest, write_manifest

_VERSION_RE = re.compile(r"(<Version>)([^<]*)(</Version>)")
_PROPERTY_GROUP_RE = re.compile(r"<PropertyGroup\b[^>]*(?<!/)>.*?</PropertyGroup>", re.DOTALL)
_GROUP_CLOSE_RE = re.compile(r"^([ \t]*)</PropertyGroup>", re.MULTILINE)


def _local(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


class CSharpManifest(Manifest):
    language = Language.CSHARP

    def write_version(self, new_version: str) -> None:
        text = read_manifest(self.path, self.rel_path)
        new_text, count = text, 0
        # Only PropertyGroup versions; PackageReference children also use <Version>
        for group in _PROPERTY_GROUP_RE.finditer(text):
            new_group, count = _VERSION_RE.subn(
                lambda m: m.group(1) + new_version + m.group(3), group.group(0), count=1
            )
            if count:
                new_text = text[: group.start()] + new_group + text[group.end() :]
                break
        if count == 0:
            close = _GROUP_CLOSE_RE.search(text)
            if close is None:
                new_text = _append_property_group(text, new_version, self.rel_path)
            else:
                unit = detect_indent(text)
                line = f"{close.group(1)}{unit}<Version>{new_version}</Version>\n"
                new_text = text[: close.start()] + line + text[close.start() :]
        write_manifest(self.path, self.rel_path, new_text)

    def default_publish_command(self) -> str:
        return "dotnet pack -c Release && dotnet nuget push"


def _append_property_group(text: str, new_version: str, rel_path: str) -> str:
    unit = detect_indent(text)
    group = (
        f"{unit}<PropertyGroup>\n"
        f"{unit * 2}<Version>{new_version}</Version>\n"
        f"{unit}</PropertyGroup>\n"
    )
    index = text.rfind("</Project>")
    if index == -1:
        raise ManifestParseError(f"{rel_path} has no </Project> element")
    return text[:index] + group + text[index:]


class CSharpFinder(ProjectFinder):
    language = Language.CSHARP
    project_files = ("*.csproj",)

    def parse(self, path: Path, rel_path: str) -> Project:
        text = read_manifest(path, rel_path)
        try:
            root = ET.fromstring(text.lstrip("\ufeff"))
        except ET.ParseError as exc:
            raise ManifestParseError(f"Failed to parse {rel_path}: {exc}") from exc

        version = None
        dependencies = set()
        for element in root.iter():
            tag = _local(element.tag)
            if tag == "PropertyGroup" and version is None:
                for child in element:
                    if _local(child.tag) == "Version" and child.text:
                        version = child.text.strip()
                        break
            elif tag == "ProjectReference":
                include = element.get("Include")
                if include:
                    dependencies.add(PureWindowsPath(include).stem)

        manifest = CSharpManifest(
            path, rel_path, name=path.stem, version=version, dependencies=dependencies
        )
        is_workspace = any(path.parent.glob("*.sln"))
        kind = ProjectKind.WORKSPACE if is_workspace else ProjectKind.PACKAGE
        return Project(kind, manifest)
