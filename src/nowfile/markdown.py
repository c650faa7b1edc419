"""
Inline markup rendering for task descriptions

Supports *emphasis*, **bold** and ##highlight# runs and hides the
@due marker from the visible text.
"""

RESET = "\033[0m"
GREEN = "\033[32m"
RED = "\033[31m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
BOLD = "\033[1m"
DIM = "\033[2m"
ITALIC = "\033[3m"

DUE_PREFIX = '@due:'


def _styled_run(text: str, start: int, closing: str, style: str):
    """Return the styled run starting at start and the index after its closing delimiter"""
    end = text.find(closing, start)
    if end == -1:
        return f"{style}{text[start:]}{RESET}", len(text)
    return f"{style}{text[start:end]}{RESET}", end + len(closing)


def render_markdown(text: str) -> str:
    """
    Render a description with ANSI styling

    Args:
        text: Raw task description, markup and due marker included

    Returns:
        Styled text. Unterminated runs extend to the end of the text.
    """
    out = []
    i = 0
    n = len(text)

    while i < n:
        if text.startswith('**', i):
            run, i = _styled_run(text, i + 2, '**', BOLD)
            out.append(run)
        elif text[i] == '*':
            run, i = _styled_run(text, i + 1, '*', ITALIC)
            out.append(run)
        elif text.startswith('##', i):
            run, i = _styled_run(text, i + 2, '#', CYAN)
            out.append(run)
        elif text.startswith(DUE_PREFIX, i):
            had_space = i > 0 and text[i - 1] == ' ' and out and out[-1] == ' '
            if had_space:
                out.pop()
            i += len(DUE_PREFIX)
            while i < n and text[i] not in ' \t':
                i += 1
            # Without a preceding space, drop the following one instead
            if not had_space and i < n:
                i += 1
        else:
            out.append(text[i])
            i += 1

    return ''.join(out)
