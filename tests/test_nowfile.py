"""
Tests for the task file codec, due-date extraction and markup rendering

Run with: pytest tests/
"""

import json
import pytest
from datetime import datetime

from nowfile import TaskFile, extract_due_date, render_markdown
from nowfile.markdown import RESET, BOLD, ITALIC, CYAN


def make_record(task_id, description='task', done=False):
    return {
        'id': task_id,
        'description': description,
        'created_at': '2025-01-01T09:30:00',
        'completed_at': '2025-01-02T10:00:00' if done else None,
        'due_at': None,
        'done': done,
    }


class TestTaskFile:
    """Test suite for whole-collection load/save"""

    def test_missing_file_loads_empty(self, tmp_path):
        """A task file that does not exist is an empty collection"""
        task_file = TaskFile({'path': str(tmp_path / 'nowfile')})
        assert task_file.load() == []

    def test_save_then_load(self, tmp_path):
        records = [make_record(1, 'first'), make_record(2, 'second ünïcode', done=True)]
        task_file = TaskFile({'path': str(tmp_path / 'nowfile')})

        task_file.save(records)

        assert task_file.load() == records

    def test_save_overwrites_previous_contents(self, tmp_path):
        task_file = TaskFile({'path': str(tmp_path / 'nowfile')})
        task_file.save([make_record(1), make_record(2), make_record(3)])

        task_file.save([make_record(1)])

        assert task_file.load() == [make_record(1)]

    def test_truncated_trailing_record_ignored(self, tmp_path):
        """Only whole records are read"""
        path = tmp_path / 'nowfile'
        lines = [json.dumps(make_record(1)), json.dumps(make_record(2)), '{"id": 3, "descr']
        path.write_text('\n'.join(lines))

        records = TaskFile({'path': str(path)}).load()

        assert [r['id'] for r in records] == [1, 2]

    def test_reading_stops_at_malformed_record(self, tmp_path):
        path = tmp_path / 'nowfile'
        lines = [json.dumps(make_record(1)), json.dumps({'id': 2}), json.dumps(make_record(3))]
        path.write_text('\n'.join(lines) + '\n')

        records = TaskFile({'path': str(path)}).load()

        assert [r['id'] for r in records] == [1]

    def test_save_creates_parent_directory(self, tmp_path):
        task_file = TaskFile({'path': str(tmp_path / 'nested' / 'dir' / 'nowfile')})
        task_file.save([make_record(1)])
        assert task_file.load() == [make_record(1)]

    def test_unencodable_record_keeps_previous_file(self, tmp_path):
        """A record that cannot be encoded leaves the stored records as they were"""
        task_file = TaskFile({'path': str(tmp_path / 'nowfile')})
        task_file.save([make_record(1), make_record(2)])

        with pytest.raises(UnicodeEncodeError):
            task_file.save([make_record(1), make_record(2), make_record(3, 'bad \udcff')])

        assert task_file.load() == [make_record(1), make_record(2)]
        assert sorted(p.name for p in tmp_path.iterdir()) == ['nowfile']

    def test_save_failure_raises_and_keeps_file(self, tmp_path):
        """A path that cannot be opened for writing raises OSError"""
        path = tmp_path / 'nowfile'
        path.mkdir()
        with pytest.raises(OSError):
            TaskFile({'path': str(path)}).save([make_record(1)])
        assert path.is_dir()
        assert list(tmp_path.iterdir()) == [path]


class TestExtractDueDate:
    """Test suite for @due marker extraction"""

    def test_marker_at_end(self):
        assert extract_due_date("buy milk @due:2025-03-10") == datetime(2025, 3, 10)

    def test_marker_anywhere(self):
        assert extract_due_date("@due:2024-12-31 pay rent") == datetime(2024, 12, 31)
        assert extract_due_date("pay@due:2024-12-31rent") == datetime(2024, 12, 31)

    def test_no_marker(self):
        assert extract_due_date("buy milk") is None
        assert extract_due_date("") is None

    def test_first_marker_wins(self):
        text = "a @due:2025-05-01 b @due:2025-01-01"
        assert extract_due_date(text) == datetime(2025, 5, 1)

    def test_pattern_requires_full_digits(self):
        assert extract_due_date("x @due:2025-3-10") is None
        assert extract_due_date("x @due:tomorrow") is None

    def test_out_of_range_dates_roll_over(self):
        """Months and days beyond the calendar carry into the next unit"""
        assert extract_due_date("@due:2025-13-01") == datetime(2026, 1, 1)
        assert extract_due_date("@due:2025-01-32") == datetime(2025, 2, 1)
        assert extract_due_date("@due:2025-03-00") == datetime(2025, 2, 28)

    def test_unrepresentable_date(self):
        assert extract_due_date("@due:0000-00-00") is None


class TestRenderMarkdown:
    """Test suite for inline markup rendering"""

    def test_bold_italic_highlight(self):
        rendered = render_markdown("**bold** and *italic* and ##hi#")
        assert rendered == (
            f"{BOLD}bold{RESET} and {ITALIC}italic{RESET} and {CYAN}hi{RESET}"
        )
        assert '*' not in rendered
        assert '#' not in rendered

    def test_plain_text_unchanged(self):
        assert render_markdown("just a task, 100% plain") == "just a task, 100% plain"

    def test_unterminated_runs_extend_to_end(self):
        assert render_markdown("**open bold") == f"{BOLD}open bold{RESET}"
        assert render_markdown("an *open") == f"an {ITALIC}open{RESET}"
        assert render_markdown("##open") == f"{CYAN}open{RESET}"

    def test_highlight_closes_on_single_hash(self):
        assert render_markdown("##hi# there") == f"{CYAN}hi{RESET} there"

    def test_due_marker_and_preceding_space_hidden(self):
        assert render_markdown("buy milk @due:2025-03-10") == "buy milk"

    def test_due_marker_mid_text(self):
        assert render_markdown("call @due:2025-03-10 mom") == "call mom"

    def test_leading_due_marker(self):
        assert render_markdown("@due:2025-03-10 call mom") == "call mom"

    def test_due_marker_not_validated(self):
        assert render_markdown("ship it @due:someday") == "ship it"
