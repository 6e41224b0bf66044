import os
import sys
import pytest

# Ensure project root is on sys.path for imports like `core.*`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


@pytest.fixture
def make_project(tmp_path):
    """Write {relative path: content} into a fresh directory and return its path."""
    def _make(files, name="project"):
        root = tmp_path / name
        root.mkdir()
        for rel_path, content in files.items():
            target = root / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return str(root)
    return _make


@pytest.fixture(autouse=True)
def clear_result_cache():
    from core.cache import get_cache
    get_cache().clear()
    yield
    get_cache().clear()
