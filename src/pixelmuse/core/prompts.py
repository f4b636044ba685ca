"""Batch prompt parsing.

A batch is entered as one prompt per line. A line may end with a filename
directive, ``#$<name>``, which names the saved image:

    a red fox in the snow #$fox1
    a blue fox at dusk

The directive is stripped before the prompt is sent to a provider; the name
travels alongside the batch outcome for the image persistence layer.
"""

import re
from collections.abc import Iterable

from .models import PromptLine

FILENAME_DIRECTIVE = re.compile(r"#\$([\w\-.]+)$", re.ASCII)


def parse_prompt_line(line: str) -> PromptLine:
    """Split a trailing ``#$name`` directive off a prompt line.

    Args:
        line: A single prompt line (surrounding whitespace is ignored)

    Returns:
        PromptLine with the cleaned prompt and the suggested filename, if any

    Examples:
        >>> parse_prompt_line("a red fox #$fox1")
        PromptLine(original='a red fox #$fox1', prompt='a red fox', suggested_filename='fox1')
    """
    original = line.strip()
    match = FILENAME_DIRECTIVE.search(original)
    if not match:
        return PromptLine(original=original, prompt=original)

    prompt = original[: match.start()].strip()
    return PromptLine(original=original, prompt=prompt, suggested_filename=match.group(1))


def split_batch_prompts(prompts: str | Iterable[str]) -> list[PromptLine]:
    """Turn raw batch input into parsed prompt lines.

    Blank lines are dropped before anything else so that the number of
    returned entries equals the number of units of work.

    Args:
        prompts: Either one multi-line string or an iterable of lines

    Returns:
        Parsed prompt lines in input order (possibly empty)
    """
    if isinstance(prompts, str):
        lines = prompts.splitlines()
    else:
        lines = []
        for item in prompts:
            lines.extend(item.splitlines() or [""])

    return [parse_prompt_line(line) for line in lines if line.strip()]
