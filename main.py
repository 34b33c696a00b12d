#!/usr/bin/env python3
"""
PlanetFeed - Incremental Feed Aggregation
=========================================

Main application entry point.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py list-feeds                # Show configured feeds
    python main.py fetch                     # Run one ingestion pass
"""

from planetfeed.cli import main


if __name__ == "__main__":
    main()
