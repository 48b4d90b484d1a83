#!/usr/bin/env python3
"""Run repository checks: ruff, pyright, and tests.

Exits non-zero when a check fails so CI and local tooling can observe status.
Use --no-imaging on machines without libvips to skip codec-backed tests.
"""

from __future__ import annotations

import argparse
import subprocess
import sys


def run(cmd: list[str]) -> int:
    print("=>", " ".join(cmd))
    res = subprocess.run(cmd, check=False)
    return res.returncode


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--no-tests", action="store_true", help="Skip running pytest")
    parser.add_argument("--no-imaging", action="store_true", help="Skip tests that need libvips")
    parser.add_argument("--fix", action="store_true", help="Let ruff apply fixes")
    args = parser.parse_args()

    ruff = [sys.executable, "-m", "ruff", "check", "pickemall", "tests"]
    if args.fix:
        ruff.append("--fix")
    if run(ruff) != 0:
        print("ruff failed")
        return 1

    if run([sys.executable, "-m", "pyright", "pickemall"]) != 0:
        print("pyright failed")
        return 1

    if not args.no_tests:
        pytest_cmd = [sys.executable, "-m", "pytest", "-q"]
        if args.no_imaging:
            pytest_cmd += ["-m", "not imaging"]
        if run(pytest_cmd) != 0:
            print("pytest failed")
            return 1

    print("All checks passed")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
