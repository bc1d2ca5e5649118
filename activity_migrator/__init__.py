#!/usr/bin/env python3
"""
Resumable batch migrations for activity notification status
"""

__version__ = "0.1.0"

from activity_migrator.core.config import MigrationConfig, load_config
from activity_migrator.core.cursor import CursorState, ProgressCursor
from activity_migrator.core.migration_runner import ChunkedMigrationRunner
from activity_migrator.core.orphan_sweeper import OrphanSweeper
from activity_migrator.core.scheduler import MigrationScheduler
