"""
Launcher for the Power Platform Compliance Assessment.

Runs the assessment with this directory as the script directory, so an
assessment_config.json placed here is picked up and the report is written here.

Usage (run from inside the project directory):
    python run.py
    python run.py --config other_config.json --verbose
"""
import sys
from pathlib import Path

from powerplatform_assessment.__main__ import main

if __name__ == "__main__":
    sys.exit(main(script_dir=Path(__file__).resolve().parent))
