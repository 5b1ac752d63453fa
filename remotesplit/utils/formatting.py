"""
Human readable size reports.
"""

from ..core.types import BundleAnalysis

REPORT_LIMIT = 15


def format_bytes(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f} KB"
    return f"{num_bytes / (1024 * 1024):.2f} MB"


def format_report(analysis: BundleAnalysis) -> str:
    """Render the largest packages of an analysis as a bar chart."""
    lines = [
        f"Bundle size: {format_bytes(analysis.total_bytes)}",
        "",
        "Dependencies by size:",
        "─" * 60,
    ]

    for package in analysis.packages[:REPORT_LIMIT]:
        bar = "█" * max(1, int(package.percentage / 2 + 0.5))
        lines.append(
            f"  {package.name:<30} {format_bytes(package.bytes):>10} "
            f"{package.percentage:>3}% {bar}"
        )

    return "\n".join(lines)
