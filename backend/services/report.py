"""Plain-text points vs. time spent report."""

from services.task_metrics import MetricNode


def format_points(value: float) -> str:
    """Format points without a trailing ``.0`` for whole numbers."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return str(value)


def render_report(node: MetricNode) -> str:
    """Render the metric tree pre-order, one tab of indent per level.

    Each line reads ``<id> <name> - points: <own> (<total>), time_spent:
    <own days> (<total days>)``.
    """
    lines = []

    def walk(current: MetricNode, depth: int):
        prefix = "\t" * depth
        lines.append(
            f"{prefix}{current.identifier} {current.name} - "
            f"points: {format_points(current.own_points)} ({format_points(current.total_points)}), "
            f"time_spent: {current.own_dev_days} ({current.total_dev_days})"
        )
        for child in current.children:
            walk(child, depth + 1)

    walk(node, 0)
    return "\n".join(lines)
