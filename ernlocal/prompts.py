"""Interactive prompts on stdin/stderr.

`input_fn` is injectable so callers (and tests) can answer without a terminal.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence

InputFn = Callable[[str], str]


def choose(message: str, choices: Sequence[str], *, input_fn: InputFn = input) -> str:
    """Ask the user to pick one of `choices` by number; re-asks until the answer is valid."""
    if not choices:
        raise ValueError(f"Nothing to choose from: {message}")
    for idx, choice in enumerate(choices, start=1):
        print(f"  {idx}) {choice}", file=sys.stderr)
    while True:
        answer = input_fn(f"{message} [1-{len(choices)}]: ").strip()
        if answer.isdigit() and 1 <= int(answer) <= len(choices):
            return choices[int(answer) - 1]
        if answer in choices:
            return answer
        print(f"Please enter a number between 1 and {len(choices)}.", file=sys.stderr)


def confirm(message: str, *, default: bool = False, input_fn: InputFn = input) -> bool:
    suffix = "(Y/n)" if default else "(y/N)"
    answer = input_fn(f"{message} {suffix}: ").strip().lower()
    if not answer:
        return default
    return answer in {"y", "yes"}
