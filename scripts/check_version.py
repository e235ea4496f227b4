#!/usr/bin/env python3
"""Check that localauth/__init__.py and pyproject.toml agree on the version.

Exit codes:
    0: Versions match
    1: Version mismatch or error
"""

import re
import sys
import tomllib
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent


def read_package_version(init_file: Path) -> str | None:
    """Return ``__version__`` from a module file, or None if absent."""
    content = init_file.read_text(encoding="utf-8")
    match = re.search(r'^__version__\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE)
    return match.group(1) if match else None


def read_project_version(pyproject_file: Path) -> str | None:
    """Return ``[project].version`` from pyproject.toml, or None."""
    try:
        data = tomllib.loads(pyproject_file.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError:
        return None
    return data.get("project", {}).get("version")


def main(root: Path = PROJECT_ROOT) -> int:
    init_file = root / "localauth" / "__init__.py"
    pyproject_file = root / "pyproject.toml"

    for path in (init_file, pyproject_file):
        if not path.exists():
            print(f"✗ Error: {path} not found", file=sys.stderr)
            return 1

    package_version = read_package_version(init_file)
    project_version = read_project_version(pyproject_file)
    if package_version is None or project_version is None:
        print("✗ Error: could not read both versions", file=sys.stderr)
        return 1

    if package_version != project_version:
        print("✗ Version mismatch detected!", file=sys.stderr)
        print(f"   localauth/__init__.py: {package_version}", file=sys.stderr)
        print(f"   pyproject.toml:        {project_version}", file=sys.stderr)
        return 1

    print(f"✓ Version consistency check passed: {package_version}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
