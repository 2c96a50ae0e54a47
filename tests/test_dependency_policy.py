"""Tests enforcing dependency pinning policy for the distribution."""

from __future__ import annotations

from pathlib import Path

import tomllib

PYPROJECT = Path(__file__).resolve().parents[1] / "pyproject.toml"


def _project() -> dict[str, object]:
    data = tomllib.loads(PYPROJECT.read_text(encoding="utf-8"))
    return data["project"]


def test_all_dependencies_are_pinned() -> None:
    """Project dependencies must be pinned to exact versions."""

    project = _project()
    dependencies = project["dependencies"]
    optional = project.get("optional-dependencies", {})
    assert isinstance(dependencies, list)
    assert isinstance(optional, dict)

    for requirement in dependencies:
        assert "==" in requirement, f"Core dependency not pinned: {requirement}"

    for group, requirements in optional.items():
        for requirement in requirements:
            assert "==" in requirement, (
                f"Optional dependency '{group}' not pinned: {requirement}"
            )


def test_yaml_support_is_optional() -> None:
    """PyYAML backs YAML config files only and must stay out of core deps."""

    project = _project()
    core = [str(item).split("==")[0].lower() for item in project["dependencies"]]  # type: ignore[union-attr]
    optional = project["optional-dependencies"]
    assert isinstance(optional, dict)

    assert "pyyaml" not in core
    assert any(item.startswith("PyYAML==") for item in optional["yaml"])
    assert any(item.startswith("pytest==") for item in optional["test"])
