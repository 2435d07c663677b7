#!/usr/bin/env python3
"""
Run all pipeline stages in sequence.
"""

import argparse
import subprocess
import sys
from pathlib import Path


def shared_args(argv: list) -> list:
    """Keep only the options every stage script accepts."""
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--config")
    parser.add_argument("--log-level")
    parser.add_argument("--log-file")
    args, _ = parser.parse_known_args(argv)

    forwarded = []
    for flag, value in (
        ("--config", args.config),
        ("--log-level", args.log_level),
        ("--log-file", args.log_file),
    ):
        if value is not None:
            forwarded.extend([flag, value])
    return forwarded


def run_script(script_name: str, extra_args: list) -> bool:
    """Run a script and return success status."""
    print(f"\n{'=' * 50}")
    print(f"Running {script_name}...")
    print("=" * 50)

    try:
        result = subprocess.run(
            [sys.executable, script_name, *extra_args],
            capture_output=True,
            text=True,
            check=True,
        )

        # Stage logs go to stderr
        if result.stderr:
            print(result.stderr)

        return True

    except subprocess.CalledProcessError as e:
        print(f"Error running {script_name}:")
        print(e.stderr if e.stderr else str(e))
        return False


def main(argv: list = None):
    """Run all scripts in sequence."""
    scripts = ["sample_points.py", "get_timeseries.py", "fit_phenology.py"]
    extra_args = shared_args(sys.argv[1:] if argv is None else argv)

    print("Starting fire phenology pipeline...")
    print("\nWorkflow:")
    print("  1. sample_points.py  - AOI → sample_points.shp / sample_points.csv")
    print("  2. get_timeseries.py - Earth Engine index extraction → time_series.csv")
    print("  3. fit_phenology.py  - Double-logistic fits → phenology.csv")

    for script in scripts:
        if not Path(script).exists():
            print(f"Error: {script} not found!")
            sys.exit(1)

        success = run_script(script, extra_args)
        if not success:
            print(f"\nPipeline stopped due to error in {script}")
            sys.exit(1)

    print("\n" + "=" * 50)
    print("✅ All stages completed successfully!")
    print("Output files are listed in config.yaml")
    print("=" * 50)


if __name__ == "__main__":
    main()
