#!/usr/bin/env python3
"""
now CLI

A minimal todo manager for the command line. Tasks live in ~/.nowfile.

Usage:
    ./now.py add "task 1" ["task 2" ...]     # Add one or more tasks
    ./now.py done <id> [id ...]              # Mark tasks as done
    ./now.py remove <id> [id ...]            # Remove tasks
    ./now.py list [--raw] [--due] [--completed] [--pending] [--sort=created|completed|due]
    ./now.py search "keyword"                # Search tasks by keyword
    ./now.py stats                           # Show task statistics

Examples:
    # Add a task with a due date and some markup
    ./now.py add "write **report** @due:2025-03-10"

    # Show open tasks, earliest due first
    ./now.py list --pending --sort=due
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from task_tracker import main

if __name__ == '__main__':
    sys.exit(main())
