from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.processing_result import ImportProgress

"""Progress display service with tqdm (TTY only).

The commit stage yields ImportProgress values; the CLI feeds them to a single
ProgressTracker. In non-TTY environments (CI, redirected output) no bar is
created so the labeled log lines stay clean.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True when stdout is a TTY and a progress bar should be displayed."""
    return sys.stdout.isatty()


class ProgressTracker:
    """Progress bar over the tasks of one commit.

    Without a TTY every method is a no-op apart from counting.
    """

    def __init__(self, total: int, *, description: str = "Importing tasks") -> None:
        self.total = total
        self.description = description
        self.current = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit="task",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def update(self, progress: ImportProgress) -> None:
        """Advance the bar to ``progress.current`` (resumed commits may start mid-way)."""
        step = progress.current - self.current
        if step <= 0:
            return
        self.current = progress.current
        if self.enabled and self.pbar is not None:
            self.pbar.update(step)
            self.pbar.set_postfix(task=progress.current_item_label[:30])

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
