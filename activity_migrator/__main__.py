#!/usr/bin/env python3
"""
Main execution module for the activity notification migration tool
"""

from activity_migrator.cli.commands import main

if __name__ == "__main__":
    main()
