"""
Utility functions for extracting framework versions from project manifests.

Extraction is best-effort: a missing manifest, a malformed one, or a
declaration in an unexpected format all yield None rather than an error.
"""
import re
import json
from typing import Optional

from scan.project_index import ProjectIndex

# name, optional extras, optional specifier + version
REQUIREMENT_LINE = re.compile(
    r'^\s*([A-Za-z0-9_.\-]+)\s*(?:\[[^\]]*\])?\s*(==|>=|~=|<=|!=|>|<)?\s*([^\s;#,]+)?'
)


def _normalize_name(name: str) -> str:
    return re.sub(r'[-_.]+', '-', name).lower()


def extract_version_from_requirements(content: str, package: str) -> Optional[str]:
    """
    Extract a pinned or minimum version from requirements.txt content.

    Examples:
        - flask==2.3.2 -> 2.3.2
        - fastapi>=0.100 -> >=0.100
        - Django -> None
    """
    if not content:
        return None

    wanted = _normalize_name(package)
    for line in content.splitlines():
        match = REQUIREMENT_LINE.match(line)
        if not match or _normalize_name(match.group(1)) != wanted:
            continue
        operator, version = match.group(2), match.group(3)
        if not operator or not version:
            return None
        return version if operator == "==" else f"{operator}{version}"
    return None


def extract_version_from_pyproject(content: str, package: str) -> Optional[str]:
    """
    Extract a version from pyproject.toml dependency declarations.

    Handles PEP 621 lists ("flask>=2.0") and Poetry tables (flask = "^2.0").
    """
    if not content:
        return None

    name = re.escape(package)
    pep621 = re.search(rf'["\']{name}\s*(?:\[[^\]]*\])?\s*(==|>=|~=)\s*([^"\',;\s]+)', content, re.IGNORECASE)
    if pep621:
        operator, version = pep621.group(1), pep621.group(2)
        return version if operator == "==" else f"{operator}{version}"

    poetry = re.search(rf'^\s*{name}\s*=\s*["\']([^"\']+)["\']', content, re.IGNORECASE | re.MULTILINE)
    if poetry:
        return poetry.group(1)

    poetry_table = re.search(
        rf'^\s*{name}\s*=\s*\{{[^}}]*version\s*=\s*["\']([^"\']+)["\']', content, re.IGNORECASE | re.MULTILINE
    )
    if poetry_table:
        return poetry_table.group(1)
    return None


def extract_version_from_package_json(content: str, package: str) -> Optional[str]:
    """
    Extract a dependency range from package.json.

    Parses the manifest as JSON; a malformed manifest falls back to a
    substring scan for '"package": "version"'.
    """
    if not content:
        return None

    try:
        manifest = json.loads(content)
    except ValueError:
        match = re.search(rf'"{re.escape(package)}"\s*:\s*"([^"]*)"', content)
        if not match:
            return None
        return match.group(1).strip() or None

    if not isinstance(manifest, dict):
        return None
    for section in ("dependencies", "devDependencies", "peerDependencies"):
        deps = manifest.get(section)
        if isinstance(deps, dict) and isinstance(deps.get(package), str):
            return deps[package].strip() or None
    return None


def extract_version_from_maven(content: str, package: str) -> Optional[str]:
    """
    Extract a version from pom.xml for an artifact whose id contains package.

    Looks at the <parent> declaration first (spring-boot-starter-parent),
    then at dependencies with an explicit <version>.
    """
    if not content:
        return None

    artifact = re.escape(package)
    block = re.search(
        rf'<artifactId>[^<]*{artifact}[^<]*</artifactId>\s*<version>\s*([^<\s]+)\s*</version>',
        content,
    )
    if block and not block.group(1).startswith("${"):
        return block.group(1)
    return None


def extract_version_from_gradle(content: str, package: str) -> Optional[str]:
    """
    Extract a plugin version from build.gradle or build.gradle.kts.

    Examples:
        - id 'org.springframework.boot' version '3.1.0' -> 3.1.0
        - id("org.springframework.boot") version "3.2.1" -> 3.2.1
    """
    if not content:
        return None

    plugin = re.escape(package)
    match = re.search(
        rf'id\s*\(?\s*["\']{plugin}["\']\s*\)?\s*version\s*["\']([^"\']+)["\']',
        content,
    )
    return match.group(1) if match else None


def extract_version_from_deno(content: str, package: str) -> Optional[str]:
    """
    Extract a version from a deno.json import specifier.

    Examples:
        - "jsr:@danet/core@2.3.0" -> 2.3.0
        - "https://deno.land/x/danet@v1.7.4/mod.ts" -> 1.7.4
    """
    if not content:
        return None

    match = re.search(rf'{re.escape(package)}@v?([0-9][\w.\-]*)', content)
    return match.group(1) if match else None


MANIFESTS = {
    "requirements": (("requirements.txt",), extract_version_from_requirements),
    "pyproject": (("pyproject.toml",), extract_version_from_pyproject),
    "package_json": (("package.json",), extract_version_from_package_json),
    "maven": (("pom.xml",), extract_version_from_maven),
    "gradle": (("build.gradle", "build.gradle.kts"), extract_version_from_gradle),
    "deno": (("deno.json", "deno.jsonc"), extract_version_from_deno),
}


def extract_version(index: ProjectIndex, source: str, package: str) -> Optional[str]:
    """Extract a version for package from the manifest(s) of the given source kind."""
    if source not in MANIFESTS:
        return None

    filenames, extractor = MANIFESTS[source]
    for filename in filenames:
        version = extractor(index.read_file(filename) or "", package)
        if version:
            return version
    return None
