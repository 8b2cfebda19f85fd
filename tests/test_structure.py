"""
Structure lint tests.
Verify the functional core / imperative shell layout and its conventions.
"""

import ast
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
SRC = PROJECT_ROOT / "src"

# Modules that must stay free of I/O and framework imports
PURE_PACKAGES = [SRC / "domain", SRC / "components" / "subscriptions"]
FORBIDDEN_IN_CORE = {"sqlite3", "httpx", "fastapi", "uvicorn", "yaml"}


def imported_modules(path: Path) -> set[str]:
    tree = ast.parse(path.read_text())
    names: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            names.update(alias.name.split(".")[0] for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            names.add(node.module.split(".")[0])
    return names


class TestProjectStructure:
    """Verify project structure follows conventions."""

    def test_core_directories_exist(self) -> None:
        assert (SRC / "domain").is_dir()
        assert (SRC / "core" / "ports").is_dir()
        assert (SRC / "components" / "subscriptions").is_dir()

    def test_shell_directories_exist(self) -> None:
        assert (SRC / "api" / "routes").is_dir()
        assert (SRC / "app_shell").is_dir()
        assert (SRC / "shell" / "http").is_dir()

    def test_component_follows_contract(self) -> None:
        """Component has models, ports, component and local tests."""
        component = SRC / "components" / "subscriptions"
        for name in ("__init__.py", "models.py", "ports.py", "component.py"):
            assert (component / name).is_file(), name
        assert list((component / "tests").glob("test_*.py"))

    def test_migrations_are_ordered(self) -> None:
        names = sorted(p.name for p in (PROJECT_ROOT / "migrations").glob("*.sql"))
        assert names
        assert all(name[:4].isdigit() for name in names)

    def test_configuration_files_exist(self) -> None:
        for name in ("base.yaml", "local.yaml", "production.yaml"):
            assert (PROJECT_ROOT / "configuration" / name).is_file(), name


class TestCoreIsPure:
    def test_core_has_no_io_imports(self) -> None:
        for package in PURE_PACKAGES:
            for path in package.rglob("*.py"):
                if "tests" in path.parts:
                    continue
                leaked = imported_modules(path) & FORBIDDEN_IN_CORE
                assert not leaked, f"{path.relative_to(PROJECT_ROOT)} imports {leaked}"

    def test_core_does_not_import_adapters(self) -> None:
        for package in PURE_PACKAGES:
            for path in package.rglob("*.py"):
                if "tests" in path.parts:
                    continue
                source = path.read_text()
                assert "src.adapters" not in source, path
                assert "src.api" not in source, path
