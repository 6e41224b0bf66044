"""In-memory index of a project tree, built in a single walk.

Every evidence check runs against this index instead of re-walking the tree,
so a project is traversed exactly once per detection run.
"""
import os
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

import regex

from scan.file_reader import read_text, DEFAULT_MAX_FILE_SIZE

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_DIRS = frozenset({
    "node_modules",
    ".git",
    "venv",
    ".venv",
    "env",
    "target",
    "dist",
    "build",
    ".next",
    "__pycache__",
    ".idea",
    ".vscode",
    "vendor",
    "coverage",
    ".nyc_output",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
})

# Files with these extensions get their content loaded during the walk
TEXT_EXTENSIONS = frozenset({
    ".py", ".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx", ".vue",
    ".java", ".kt", ".kts", ".gradle", ".xml", ".properties",
    ".json", ".jsonc", ".toml", ".txt", ".cfg", ".ini", ".yml", ".yaml",
    ".rs", ".go", ".html",
})

# Hard timeout (seconds) for a single regex search against one file
REGEX_TIMEOUT_SECONDS = 1.0


@dataclass(frozen=True)
class IndexedFile:
    path: str  # Relative, '/'-separated
    extension: str  # Lowercase with leading dot, '' when none
    size: int
    mtime_ns: int
    content: Optional[str] = None


def _extension_of(name: str) -> str:
    return os.path.splitext(name)[1].lower()


def _normalize_extensions(extensions: Iterable[str]) -> Set[str]:
    return {e.lower() if e.startswith(".") else f".{e.lower()}" for e in extensions}


class ProjectIndex:
    def __init__(self, root: str, files: Dict[str, IndexedFile], directories: Set[str]):
        self.root = root
        self.files = files
        self.directories = directories

    @classmethod
    def build(
        cls,
        root: str,
        ignore_dirs: Optional[Iterable[str]] = None,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ) -> "ProjectIndex":
        """Walk the project once and index paths, directories and text contents.

        Raises FileNotFoundError, NotADirectoryError or PermissionError when the
        root itself cannot be scanned. Failures below the root are logged and
        skipped.
        """
        root = os.path.abspath(root)
        if not os.path.exists(root):
            raise FileNotFoundError(f"Project path does not exist: {root}")
        if not os.path.isdir(root):
            raise NotADirectoryError(f"Project path is not a directory: {root}")
        # Surface an unreadable root as a single top-level error
        os.listdir(root)

        ignored = set(ignore_dirs) if ignore_dirs is not None else set(DEFAULT_IGNORE_DIRS)
        files: Dict[str, IndexedFile] = {}
        directories: Set[str] = set()

        def on_error(error: OSError) -> None:
            logger.debug(f"Cannot list {error.filename}: {error}")

        for current, dirs, filenames in os.walk(root, onerror=on_error, followlinks=False):
            # prune ignored dirs in place
            dirs[:] = sorted(d for d in dirs if d not in ignored)
            rel_dir = os.path.relpath(current, root)
            rel_dir = "" if rel_dir == "." else rel_dir.replace(os.sep, "/")

            for d in dirs:
                directories.add(f"{rel_dir}/{d}" if rel_dir else d)

            for name in sorted(filenames):
                full_path = os.path.join(current, name)
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                extension = _extension_of(name)
                try:
                    stat = os.stat(full_path)
                    size, mtime_ns = stat.st_size, stat.st_mtime_ns
                except OSError as e:
                    logger.debug(f"Cannot stat {rel_path}: {e}")
                    size, mtime_ns = 0, 0

                content = None
                if extension in TEXT_EXTENSIONS or not extension:
                    content = read_text(full_path, max_bytes=max_file_size)

                files[rel_path] = IndexedFile(
                    path=rel_path,
                    extension=extension,
                    size=size,
                    mtime_ns=mtime_ns,
                    content=content,
                )

        logger.debug(f"Indexed {len(files)} files and {len(directories)} directories under {root}")
        return cls(root, files, directories)

    def iter_files(self, extensions: Optional[Iterable[str]] = None) -> Iterator[IndexedFile]:
        """Yield indexed files in path order, optionally filtered by extension."""
        wanted = _normalize_extensions(extensions) if extensions is not None else None
        for path in sorted(self.files):
            indexed = self.files[path]
            if wanted is None or indexed.extension in wanted:
                yield indexed

    def has_file(self, name: str) -> bool:
        return name.strip("/") in self.files

    def has_directory(self, name: str) -> bool:
        return name.strip("/") in self.directories

    def read_file(self, name: str) -> Optional[str]:
        """Read a single file relative to the root; None when missing or unreadable."""
        indexed = self.files.get(name.strip("/"))
        if indexed is None:
            return None
        if indexed.content is not None:
            return indexed.content
        return read_text(os.path.join(self.root, indexed.path))

    def has_extension(self, extensions: Iterable[str]) -> bool:
        return any(True for _ in self.iter_files(extensions))

    def count_files_by_extension(self) -> Counter:
        return Counter(f.extension for f in self.files.values() if f.extension)

    def iter_pattern_matches(
        self,
        extensions: Iterable[str],
        values: Iterable[str],
        ignore_case: bool = False,
    ) -> Iterator[str]:
        """Yield paths of files with a matching extension containing any of the literal values."""
        needles = [v.lower() for v in values] if ignore_case else list(values)
        for indexed in self.iter_files(extensions):
            if indexed.content is None:
                continue
            haystack = indexed.content.lower() if ignore_case else indexed.content
            if any(n in haystack for n in needles):
                yield indexed.path

    def find_pattern_matches(
        self,
        extensions: Iterable[str],
        values: Iterable[str],
        ignore_case: bool = False,
    ) -> List[str]:
        return list(self.iter_pattern_matches(extensions, values, ignore_case))

    def has_patterns_in_files(
        self,
        extensions: Iterable[str],
        values: Iterable[str],
        ignore_case: bool = False,
    ) -> bool:
        return next(self.iter_pattern_matches(extensions, values, ignore_case), None) is not None

    def search_regex_in_files(
        self,
        extensions: Iterable[str],
        pattern: str,
        ignore_case: bool = False,
    ) -> Optional[Tuple[str, str]]:
        """First (path, matched text) for a regex across files, or None."""
        flags = regex.IGNORECASE if ignore_case else 0
        for indexed in self.iter_files(extensions):
            if indexed.content is None:
                continue
            try:
                match = regex.search(pattern, indexed.content, flags, timeout=REGEX_TIMEOUT_SECONDS)
            except TimeoutError:
                logger.warning(f"Pattern timeout for {pattern[:50]} on {indexed.path}")
                continue
            if match:
                return indexed.path, match.group(0)
        return None
