#!/usr/bin/env python3
"""
Test runner for the weld labeling service.

Usage:
  python run_tests.py                 # everything, with coverage
  python run_tests.py --type core -v  # session state machine and geometry only
"""

import sys
import subprocess
import argparse
from pathlib import Path

TEST_PATHS = {
  "all": ["tests/"],
  "unit": ["tests/unit/"],
  "core": ["tests/unit/core/"],
  "services": ["tests/unit/services/", "tests/unit/clients/"],
  "api": ["tests/integration/api/"],
}


def run_command(cmd, description):
  print(f"\n{'='*60}")
  print(f"Running: {description}")
  print(f"Command: {' '.join(cmd)}")
  print(f"{'='*60}")

  try:
    subprocess.run(cmd, check=True, cwd=Path(__file__).parent)
    print(f"{description} completed successfully")
    return True
  except subprocess.CalledProcessError as e:
    print(f"{description} failed with exit code {e.returncode}")
    return False
  except FileNotFoundError:
    print("Command not found. Install the test extra: pip install -e .[test]")
    return False


def main():
  parser = argparse.ArgumentParser(description="Run tests for the weld labeling service")
  parser.add_argument("--type", choices=sorted(TEST_PATHS), default="all", help="Which tests to run (default: all)")
  parser.add_argument("--verbose", "-v", action="store_true", help="Run tests in verbose mode")
  parser.add_argument("--coverage-html", action="store_true", help="Generate HTML coverage report")
  parser.add_argument("--fast", action="store_true", help="Run tests without coverage")
  parser.add_argument("--pattern", "-k", help="Run tests matching pattern")
  args = parser.parse_args()

  pytest_cmd = [sys.executable, "-m", "pytest"]
  if args.verbose:
    pytest_cmd.append("-v")
  if args.pattern:
    pytest_cmd.extend(["-k", args.pattern])
  if not args.fast:
    pytest_cmd.extend(["--cov=weld_labeling", "--cov-branch", "--cov-report=term-missing:skip-covered"])
    if args.coverage_html:
      pytest_cmd.append("--cov-report=html:htmlcov")
  pytest_cmd.extend(TEST_PATHS[args.type])

  if not run_command(pytest_cmd, f"Running {args.type} tests"):
    sys.exit(1)
  if args.coverage_html:
    print("Coverage report generated in htmlcov/index.html")


if __name__ == "__main__":
  main()
