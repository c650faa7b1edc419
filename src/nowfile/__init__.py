"""
On-disk and inline text formats of a task
"""

from .codec import TaskFile
from .due import extract_due_date
from .markdown import render_markdown

__all__ = ['TaskFile', 'extract_due_date', 'render_markdown']
