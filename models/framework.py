from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class LanguageEcosystem(str, Enum):
    """Dominant language/runtime family of a project."""
    PYTHON = "Python"
    JAVASCRIPT = "JavaScript"
    TYPESCRIPT = "TypeScript"
    JAVA = "Java"
    DENO = "Deno"
    RUST = "Rust"
    GO = "Go"
    MIXED = "Mixed"

    @classmethod
    def from_name(cls, name: str) -> "LanguageEcosystem":
        for member in cls:
            if member.value.lower() == name.lower() or member.name.lower() == name.lower():
                return member
        raise ValueError(f"Unknown ecosystem: {name}")


class Framework(str, Enum):
    FLASK = "Flask"
    FASTAPI = "FastAPI"
    REACT = "React"
    NEXTJS = "NextJS"
    NESTJS = "NestJS"
    SPRING_BOOT = "SpringBoot"
    DANET = "Danet"
    DJANGO = "Django"
    EXPRESS = "Express"
    VUE = "Vue"
    ANGULAR = "Angular"
    UNKNOWN = "Unknown"

    @classmethod
    def from_name(cls, name: str) -> "Framework":
        for member in cls:
            if member.value.lower() == name.lower() or member.name.lower() == name.lower():
                return member
        return cls.UNKNOWN


# Ecosystem value resolved per project: TypeScript when tsconfig.json exists, else JavaScript
AUTO_ECOSYSTEM = "auto"


@dataclass(frozen=True)
class StructureCheck:
    """A file/directory existence check contributing to file-structure evidence."""
    confidence: float
    files: Tuple[str, ...] = ()
    directories: Tuple[str, ...] = ()
    # Alternatives where only the first satisfied one counts (e.g. App Router vs Pages Router)
    first_of: Tuple["StructureCheck", ...] = ()


@dataclass(frozen=True)
class EvidenceRule:
    """Defines one evidence signal for a framework."""
    type: str  # 'config_file', 'import_pattern', 'content_pattern', 'file_structure'
    confidence: float = 0.2
    description: Optional[str] = None
    source: Optional[str] = None  # Human label for the evidence source
    files: Tuple[str, ...] = ()  # Manifest/config files, relative to the project root
    extensions: Tuple[str, ...] = ()  # Source file extensions searched for values/pattern
    values: Tuple[str, ...] = ()  # Literal substrings, any of which matches
    pattern: Optional[str] = None  # Regex alternative to values
    present_extensions: Tuple[str, ...] = ()  # Matches when any file has one of these extensions
    ignore_case: bool = False
    checks: Tuple[StructureCheck, ...] = ()


@dataclass(frozen=True)
class VersionSource:
    source: str  # 'requirements', 'pyproject', 'package_json', 'maven', 'gradle', 'deno'
    package: str


@dataclass(frozen=True)
class FrameworkRule:
    """Represents a framework and its detection rules."""
    framework: Framework
    dispatch: Tuple[LanguageEcosystem, ...]
    ecosystem: str  # A LanguageEcosystem value or AUTO_ECOSYSTEM
    evidence_rules: List[EvidenceRule] = field(default_factory=list)
    threshold: float = 0.3
    requires: Optional[str] = None  # Prerequisite predicate gating the whole analysis
    versions: List[VersionSource] = field(default_factory=list)
    api_capable: bool = False

    @property
    def name(self) -> str:
        return self.framework.value
