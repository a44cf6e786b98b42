"""
ASCII charts for per-week metrics.

Creates terminal-friendly horizontal bar charts from the per-week arrays
of the metrics document.
"""

from datetime import date


def create_simple_bar_chart(
    labels: list[str],
    values: list[int],
    width: int = 40,
    title: str = "",
) -> str:
    """
    Create a simple horizontal bar chart.

    Args:
        labels: Labels for each bar
        values: Values for each bar
        width: Maximum bar width
        title: Chart title

    Returns:
        ASCII bar chart string
    """
    if not values:
        return "No data to display."

    max_val = max(values)
    max_label_len = max(len(label) for label in labels) if labels else 0

    lines = []

    if title:
        lines.append(title)
        lines.append("─" * (max_label_len + width + 8))

    for label, value in zip(labels, values):
        bar_len = int((value / max_val) * width) if max_val > 0 else 0
        lines.append(f"{label:>{max_label_len}} │{'█' * bar_len} {value}")

    return "\n".join(lines)


def create_weekly_chart(
    week_starts: list[date],
    values: list[int],
    title: str,
    width: int = 40,
) -> str:
    """
    Chart one value per ISO week, labelled with the week's Monday.

    Args:
        week_starts: Monday of each week, oldest first
        values: One value per week (same length as week_starts)
        title: Chart title
        width: Maximum bar width

    Returns:
        ASCII chart string
    """
    if not week_starts or not any(values):
        return "No training in this window."

    labels = [d.strftime("%Y-%m-%d") for d in week_starts]
    return create_simple_bar_chart(labels, values, width=width, title=title)
