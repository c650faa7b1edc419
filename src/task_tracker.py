#!/usr/bin/env python3
"""
TaskTracker

Personal command-line task tracker that:
1. Records short textual tasks with optional @due:YYYY-MM-DD dates
2. Marks tasks done and removes them, keeping ids dense
3. Lists, filters, sorts and searches tasks
4. Reports aggregate statistics

The whole task collection is loaded from a single file at the start of
each command and, for mutating commands, written back in full.
"""

import sys
import copy
import yaml
import logging
import argparse
from pathlib import Path
from typing import Dict, List, Any, Optional
from datetime import datetime
from dataclasses import dataclass

from nowfile import TaskFile, extract_due_date, render_markdown
from nowfile.markdown import RESET, BOLD, DIM, ITALIC, GREEN, RED, YELLOW, CYAN


DEFAULT_CONFIG_PATH = Path('~/.config/now/config.yaml')

DEFAULT_CONFIG: Dict[str, Any] = {
    'storage': {
        'path': '~/.nowfile',
        'max_tasks': 1024,
    },
    'logging': {
        'level': 'WARNING',
    },
}

SORT_KEYS = ('created', 'completed', 'due')


@dataclass
class Task:
    """A single tracked to-do item"""
    id: int
    description: str
    created_at: datetime
    completed_at: Optional[datetime] = None
    due_at: Optional[datetime] = None
    done: bool = False

    def is_overdue(self, now: datetime) -> bool:
        return not self.done and self.due_at is not None and now > self.due_at

    def to_record(self) -> Dict[str, Any]:
        """Convert to a storage record"""
        return {
            'id': self.id,
            'description': self.description,
            'created_at': _to_iso(self.created_at),
            'completed_at': _to_iso(self.completed_at),
            'due_at': _to_iso(self.due_at),
            'done': self.done,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Task':
        """Build a Task from a storage record; raises ValueError/TypeError if malformed"""
        created_at = _from_iso(record['created_at'])
        if created_at is None:
            raise ValueError("record has no creation time")
        return cls(
            id=int(record['id']),
            description=str(record['description']),
            created_at=created_at,
            completed_at=_from_iso(record['completed_at']),
            due_at=_from_iso(record['due_at']),
            done=bool(record['done']),
        )


@dataclass
class Stats:
    """Aggregate counts over the task collection"""
    total: int = 0
    done: int = 0
    overdue: int = 0
    next_due: Optional[datetime] = None

    @property
    def pending(self) -> int:
        return self.total - self.done


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec='seconds') if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    # Timestamps are naive local time; an offset cannot be compared with them
    if parsed.tzinfo is not None:
        raise ValueError(f"unexpected UTC offset in timestamp: {value}")
    return parsed


def _format_date(value: datetime) -> str:
    return value.strftime('%Y-%m-%d')


def _merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base"""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


# ==================== Listing ====================

def filter_tasks(
    tasks: List[Task],
    due: bool = False,
    completed: bool = False,
    pending: bool = False
) -> List[Task]:
    """
    Apply list filters; all requested filters must hold

    Args:
        tasks: Tasks to filter
        due: Keep only tasks with a due date that are not done
        completed: Keep only done tasks
        pending: Keep only tasks that are not done

    Returns:
        Filtered tasks in their given order
    """
    filtered = tasks
    if due:
        filtered = [t for t in filtered if t.due_at is not None and not t.done]
    if completed:
        filtered = [t for t in filtered if t.done]
    if pending:
        filtered = [t for t in filtered if not t.done]
    return filtered


def sort_tasks(tasks: List[Task], sort: Optional[str] = None) -> List[Task]:
    """
    Sort tasks for display

    Tasks without a completion (or due) date sort after those that have
    one and keep their relative order. No sort key keeps storage order.

    Args:
        tasks: Tasks to sort
        sort: One of 'created', 'completed', 'due', or None

    Returns:
        New sorted list

    Raises:
        ValueError: If sort is not a known key
    """
    if sort is None:
        return list(tasks)
    if sort == 'created':
        return sorted(tasks, key=lambda t: t.created_at)
    if sort == 'completed':
        return sorted(tasks, key=lambda t: (not t.done, t.completed_at or datetime.min))
    if sort == 'due':
        return sorted(tasks, key=lambda t: (t.due_at is None, t.due_at or datetime.min))
    raise ValueError(f"unknown sort key: {sort}")


def format_task(task: Task, raw: bool = False, now: Optional[datetime] = None) -> str:
    """Render one task as a display line"""
    if now is None:
        now = datetime.now()

    overdue = task.is_overdue(now)
    if task.done:
        status, color = '[x]', GREEN
    elif overdue:
        status, color = '[*]', RED
    else:
        status, color = '[ ]', RESET

    description = task.description if raw else render_markdown(task.description)
    age = (now - task.created_at).days

    line = (
        f"{YELLOW}{task.id:3d}.{RESET} {color}{status}{RESET} {description}"
        f" {DIM}({age}d){RESET} {DIM}added:{RESET} {_format_date(task.created_at)}"
    )
    if task.done and task.completed_at:
        line += f", {GREEN}done:{RESET} {_format_date(task.completed_at)}"
    if task.due_at:
        line += f", {RED}{'overdue' if overdue else 'due'}:{RESET} {_format_date(task.due_at)}"
    return line


def format_stats(stats: Stats) -> List[str]:
    """Render statistics as display lines"""
    next_due = _format_date(stats.next_due) if stats.next_due else 'none'
    return [
        f"{BOLD}Your task statistics:{RESET}",
        f"Total tasks: {stats.total}",
        f"Completed:   {stats.done}",
        f"Pending:     {stats.pending}",
        f"Overdue:     {stats.overdue}",
        f"Next due:    {next_due}",
    ]


class TaskTracker:
    """
    Task store over a single task file

    Every operation loads the full collection and mutating operations
    save it back in full.
    """

    def __init__(self, config_path: Optional[str] = None):
        """Initialize TaskTracker with configuration"""
        self.logger = self._setup_logging()
        self.config = self._load_config(config_path)
        self.logger.setLevel(str(self.config['logging']['level']).upper())

        storage = self.config['storage']
        self.max_tasks = storage.get('max_tasks') or None
        self._storage = TaskFile(storage)

        self.logger.info(f"TaskTracker initialized with task file {self._storage.path}")

    def _setup_logging(self) -> logging.Logger:
        """Setup logging for the tracker"""
        logger = logging.getLogger("TaskTracker")

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - TaskTracker - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(logging.WARNING)

        return logger

    def _load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from YAML file, falling back to defaults"""
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH.expanduser()
            if not config_path.exists():
                self.logger.debug(f"No config at {config_path}, using defaults")
                return copy.deepcopy(DEFAULT_CONFIG)
        else:
            config_path = Path(config_path).expanduser()
            if not config_path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f) or {}

        if not isinstance(user_config, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")

        return _merge_config(DEFAULT_CONFIG, user_config)

    # ==================== Storage ====================

    def load_tasks(self) -> List[Task]:
        """
        Load the task collection

        Stops at the first malformed record and after max_tasks records;
        a later save writes back only what was loaded.
        """
        tasks = []
        for record in self._storage.load():
            if self.max_tasks and len(tasks) >= self.max_tasks:
                self.logger.warning(
                    f"Task file holds more than {self.max_tasks} tasks, ignoring the rest"
                )
                break
            try:
                tasks.append(Task.from_record(record))
            except (ValueError, TypeError) as e:
                self.logger.debug(f"Ignoring malformed record {record!r}: {e}")
                break
        return tasks

    def save_tasks(self, tasks: List[Task]) -> List[str]:
        """
        Overwrite the task file with tasks

        Returns:
            Messages for the user; empty if the save succeeded
        """
        try:
            self._storage.save([task.to_record() for task in tasks])
        except (OSError, UnicodeEncodeError) as e:
            return [f"failed to save tasks: {e}"]
        return []

    # ==================== Core Methods ====================

    def add_tasks(self, descriptions: List[str], now: Optional[datetime] = None) -> List[str]:
        """
        Append one task per description

        The new id is one more than the id of the last stored task. This
        matches the true maximum only while storage order is id order,
        which remove_tasks maintains by renumbering.

        Args:
            descriptions: Raw task descriptions, due markers included
            now: Creation time (default: current time)

        Returns:
            Messages for the user
        """
        if now is None:
            now = datetime.now()
        now = now.replace(microsecond=0)

        tasks = self.load_tasks()
        messages = []

        for description in descriptions:
            if self.max_tasks and len(tasks) >= self.max_tasks:
                self.logger.warning(f"Task limit of {self.max_tasks} reached")
                messages.append("maximum task limit reached.")
                break

            task = Task(
                id=tasks[-1].id + 1 if tasks else 1,
                description=description,
                created_at=now,
                due_at=extract_due_date(description),
            )
            tasks.append(task)
            self.logger.info(f"Added task #{task.id}: '{description[:40]}'")
            messages.append(f"added task #{task.id}: {render_markdown(task.description)}")

        messages.extend(self.save_tasks(tasks))
        return messages

    def mark_done(self, task_ids: List[int], now: Optional[datetime] = None) -> List[str]:
        """
        Mark tasks done, stamping the completion time

        A task that is already done gets a new completion time.

        Returns:
            Messages for the user, one per id
        """
        if now is None:
            now = datetime.now()
        now = now.replace(microsecond=0)

        tasks = self.load_tasks()
        if not tasks:
            return ["no tasks found."]

        messages = []
        for task_id in task_ids:
            task = next((t for t in tasks if t.id == task_id), None)
            if task is None:
                messages.append(f"task #{task_id} not found.")
                continue

            task.done = True
            task.completed_at = now
            self.logger.info(f"Marked task #{task_id} done")
            messages.append(f"task #{task_id} marked as done.")

        messages.extend(self.save_tasks(tasks))
        return messages

    def remove_tasks(self, task_ids: List[int]) -> List[str]:
        """
        Remove tasks by id, then renumber the rest 1..N in storage order

        Ids are looked up against the numbering before this call.

        Returns:
            Messages for the user, one per id
        """
        tasks = self.load_tasks()
        if not tasks:
            return ["no tasks found."]

        messages = []
        for task_id in task_ids:
            index = next((i for i, t in enumerate(tasks) if t.id == task_id), None)
            if index is None:
                messages.append(f"task #{task_id} not found.")
                continue

            del tasks[index]
            self.logger.info(f"Removed task #{task_id}")
            messages.append(f"task #{task_id} removed.")

        self.renumber(tasks)
        messages.extend(self.save_tasks(tasks))
        return messages

    @staticmethod
    def renumber(tasks: List[Task]) -> None:
        """Assign ids 1..N in list order"""
        for new_id, task in enumerate(tasks, start=1):
            task.id = new_id

    def search(self, keyword: str, now: Optional[datetime] = None) -> List[str]:
        """
        Find tasks whose raw description contains keyword, ignoring case

        Returns:
            Display lines of matching tasks, or a notice if none matched
        """
        tasks = self.load_tasks()
        if not tasks:
            return ["no tasks found."]

        needle = keyword.casefold()
        matches = [t for t in tasks if needle in t.description.casefold()]
        self.logger.debug(f"Search '{keyword}' matched {len(matches)} tasks")

        if not matches:
            return [f'no tasks contained "{keyword}".']
        return [format_task(task, now=now) for task in matches]

    def list_tasks(
        self,
        raw: bool = False,
        due: bool = False,
        completed: bool = False,
        pending: bool = False,
        sort: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> List[str]:
        """
        List tasks, sorted first and then filtered

        Returns:
            Header and one display line per shown task, or a notice if the
            collection is empty

        Raises:
            ValueError: If sort is not a known key
        """
        if sort is not None and sort not in SORT_KEYS:
            raise ValueError(f"unknown sort key: {sort}")

        tasks = self.load_tasks()
        if not tasks:
            return ["no tasks found."]

        shown = filter_tasks(sort_tasks(tasks, sort), due=due, completed=completed, pending=pending)
        self.logger.debug(f"Listing {len(shown)} of {len(tasks)} tasks")

        lines = [f"{BOLD}Your tasks:{RESET}"]
        lines.extend(format_task(task, raw=raw, now=now) for task in shown)
        return lines

    def stats(self, now: Optional[datetime] = None) -> Stats:
        """
        Count tasks and find the earliest due date among open tasks

        Returns:
            Stats over the whole collection
        """
        if now is None:
            now = datetime.now()

        stats = Stats()
        for task in self.load_tasks():
            stats.total += 1
            if task.done:
                stats.done += 1
                continue
            if task.due_at is None:
                continue
            if task.due_at < now:
                stats.overdue += 1
            if stats.next_due is None or task.due_at < stats.next_due:
                stats.next_due = task.due_at

        return stats


# ==================== CLI Interface ====================

USAGE_NOTES = f"""\
Notes:
  Specify due dates in task descriptions by using the @due:YYYY-MM-DD format
  Basic markdown is supported when adding task descriptions. Use:
    Single asterisks (*) to {ITALIC}emphasize{RESET} the text
    Double asterisks (**) to make the text {BOLD}bold{RESET}
    Double hashtags (##) to {CYAN}highlight{RESET} the text
"""


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on bad input"""

    def error(self, message):
        self.print_usage(sys.stdout)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _echo(line: str) -> None:
    """Print line, escaping characters the terminal encoding cannot show"""
    try:
        print(line)
    except UnicodeEncodeError:
        encoding = getattr(sys.stdout, 'encoding', None) or 'utf-8'
        print(line.encode(encoding, 'backslashreplace').decode(encoding))


def _build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog='now',
        description="A minimal todo manager for the command line",
        epilog=USAGE_NOTES,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '--config',
        help=f'Path to config file (default: {DEFAULT_CONFIG_PATH})'
    )
    subparsers = parser.add_subparsers(dest='command', metavar='<command>')

    add_parser = subparsers.add_parser('add', help='Add one or more tasks')
    add_parser.add_argument('descriptions', nargs='+', metavar='"task"', help='Task description')

    done_parser = subparsers.add_parser('done', help='Mark one or more tasks as done')
    done_parser.add_argument('ids', nargs='+', type=int, metavar='id', help='Task id')

    remove_parser = subparsers.add_parser('remove', help='Remove one or more tasks')
    remove_parser.add_argument('ids', nargs='+', type=int, metavar='id', help='Task id')

    list_parser = subparsers.add_parser('list', help='List tasks')
    list_parser.add_argument('--raw', action='store_true',
                             help='Display raw task descriptions without formatting')
    list_parser.add_argument('--due', action='store_true',
                             help='Show only tasks with a due date')
    list_parser.add_argument('--completed', action='store_true',
                             help='Show only completed tasks')
    list_parser.add_argument('--pending', action='store_true',
                             help='Show only pending tasks')
    list_parser.add_argument('--sort', metavar='{created,completed,due}',
                             help='Sort tasks by creation, completion or due date')

    search_parser = subparsers.add_parser('search', help='Search tasks by keyword')
    search_parser.add_argument('keyword', help='Keyword to search for')

    subparsers.add_parser('stats', help='Show task statistics')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == 'list' and args.sort is not None and args.sort not in SORT_KEYS:
        print("unknown sort key.")
        return 1

    # Initialize tracker
    try:
        tracker = TaskTracker(config_path=args.config)
    except Exception as e:
        print(f"❌ Failed to initialize TaskTracker: {e}")
        return 1

    # Execute command
    if args.command == 'add':
        lines = tracker.add_tasks(args.descriptions)

    elif args.command == 'done':
        lines = tracker.mark_done(args.ids)

    elif args.command == 'remove':
        lines = tracker.remove_tasks(args.ids)

    elif args.command == 'search':
        lines = tracker.search(args.keyword)

    elif args.command == 'list':
        lines = tracker.list_tasks(
            raw=args.raw,
            due=args.due,
            completed=args.completed,
            pending=args.pending,
            sort=args.sort
        )

    elif args.command == 'stats':
        stats = tracker.stats()
        lines = format_stats(stats) if stats.total else ["no tasks found."]

    for line in lines:
        _echo(line)
    print()

    return 0


if __name__ == '__main__':
    sys.exit(main())
