import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'canonsync' and tests/ importable for helpers
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from canonsync.core.stdlib_logging import reset_stdlib_logging_for_tests
from helpers.project import ProjectFactory, STANDARD_MANIFEST, populate_standard_sources


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Tests must be deterministic regardless of the developer environment."""
    monkeypatch.delenv("CANONSYNC_PROJECT_ROOT", raising=False)
    monkeypatch.delenv("CANONSYNC_MANIFEST", raising=False)
    yield
    reset_stdlib_logging_for_tests()


@pytest.fixture
def project(tmp_path: Path) -> ProjectFactory:
    """Empty project rooted at tmp_path (with a .git marker)."""
    (tmp_path / ".git").mkdir()
    return ProjectFactory(tmp_path)


@pytest.fixture
def standard_project(project: ProjectFactory) -> ProjectFactory:
    """Project with canonical rules, commands and skills plus a manifest
    covering every sync strategy."""
    populate_standard_sources(project)
    project.write_manifest(STANDARD_MANIFEST)
    return project
