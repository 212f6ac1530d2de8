from __future__ import annotations

from ..models.processing_result import CommitResult

"""Summary line rendering for the task import CLI.

Format:
SUMMARY rows={rows} tasks={tasks} skipped_rows={skipped} created={created}
notified={notified} elapsed_sec={elapsed}
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
]


def format_seconds(value: float) -> str:
    """Integer seconds without a decimal part; small values without scientific notation."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(total_rows: int, task_count: int, result: CommitResult) -> str:
    """Render the SUMMARY line for a completed (or partially completed) import.

    Args:
        total_rows: data rows read from the source (header excluded)
        task_count: tasks materialized from those rows
        result: commit outcome

    Examples:
        >>> r = CommitResult(created_ids=("t1", "t2"), notified_recipients=("a@x.io",),
        ...                  elapsed_seconds=2.0, skipped_rows=(3,))
        >>> render_summary_line(3, 2, r)
        'SUMMARY rows=3 tasks=2 skipped_rows=1 created=2 notified=1 elapsed_sec=2'
    """
    return (
        f"SUMMARY rows={total_rows} "
        f"tasks={task_count} "
        f"skipped_rows={len(result.skipped_rows)} "
        f"created={result.created_count} "
        f"notified={len(result.notified_recipients)} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)}"
    )
