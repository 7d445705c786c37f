#!/usr/bin/env python
"""
Run all tests for the Sapphire poker tracker.

Usage (from repo root):
    python run_tests.py
    python run_tests.py test_db_live     # one module
"""

import subprocess
import sys
import os

def main():
    # Get the repo root (where this script lives)
    repo_root = os.path.dirname(os.path.abspath(__file__))
    tests_dir = os.path.join(repo_root, "tests")

    if not os.path.isdir(tests_dir):
        print(f"ERROR: Test folder not found at {tests_dir}")
        sys.exit(1)

    pattern = "test_*.py"
    if len(sys.argv) > 1:
        name = sys.argv[1]
        pattern = name if name.endswith(".py") else f"{name}.py"

    print("=" * 60)
    print(f"Running tests ({pattern})...")
    print("=" * 60)
    print()

    result = subprocess.run(
        [sys.executable, "-m", "unittest", "discover", "-s", tests_dir, "-p", pattern, "-v"],
        cwd=repo_root,
    )

    sys.exit(result.returncode)

if __name__ == "__main__":
    main()
