#!/usr/bin/env python

"""
StudyTracker - Main Entry Point

Loads the local study data and prints the study summary report.

Usage:
    python main.py

Requirements:
    - Python 3.10+
    - See pyproject.toml for dependencies
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from studytracker.application import StudyTrackerApp
from studytracker.infra.config import get_settings


async def run() -> int:
    app = StudyTrackerApp()
    await app.start()
    print(app.reports.generate_report())
    await app.shutdown()
    return 0


def main():
    """Main entry point"""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.preferences.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run())


if __name__ == "__main__":
    sys.exit(main())
