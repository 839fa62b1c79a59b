#!/usr/bin/env python3
"""Dependency doctor — verifies every runtime package and tool is available.

Called by ``make check-deps``.  Exit-code 0 means all good; 1 means at
least one Python package or required binary is missing, and the output
tells you exactly which one and how to install it.
"""

from __future__ import annotations

import importlib
import shutil
import sys

# Mapping:  import-name  →  pip-install-name
PACKAGES: dict[str, str] = {
    "click": "click",
    "rich": "rich",
    "yaml": "pyyaml",
    "pydantic": "pydantic",
}

# Mapping:  binary  →  what needs it
BINARIES: dict[str, str] = {
    "php": "occ (apps-enable, enforce-always-enabled, configure)",
    "git": "validate-external-apps, version-json",
    "composer": "build, build-all",
    "npm": "build, build-all",
}


def main() -> int:
    ok = True
    for mod, pip_name in PACKAGES.items():
        try:
            m = importlib.import_module(mod)
            version = getattr(m, "__version__", "?")
            print(f"  \033[32m✓\033[0m {pip_name:20s} {version}")
        except ImportError:
            print(f"  \033[31m✗\033[0m {pip_name:20s} MISSING  →  pip install {pip_name}")
            ok = False

    print()
    for binary, used_by in BINARIES.items():
        path = shutil.which(binary)
        if path:
            print(f"  \033[32m✓\033[0m {binary:20s} {path}")
        else:
            print(f"  \033[31m✗\033[0m {binary:20s} MISSING  →  needed by {used_by}")
            ok = False

    print()
    if not ok:
        print("\033[33mFix: run  make install  and install the missing tools.\033[0m")
        return 1

    print("\033[32mAll dependencies present ✓\033[0m")
    return 0


if __name__ == "__main__":
    sys.exit(main())
