from rich.table import Table

from dm_harvest.types.harvest_state import HarvestResult
from dm_harvest.utils.logger import logger

# Default styles for the run summary columns
DEFAULT_STYLES = {
    "profile": "cyan",
    "last activity": "yellow",
    "messages": "green",
    "first": "dim",
    "last": "dim",
}


def _sample_indices(total: int, max_display: int) -> list[int]:
    """Head and tail indices when there are too many rows to show."""
    if total <= max_display:
        return list(range(total))
    head_count = max_display // 2
    tail_count = max_display - head_count
    return list(range(head_count)) + list(range(total - tail_count, total))


def display_harvest(result: HarvestResult, max_display_items: int = 15) -> None:
    """Print a rich table of harvested conversations followed by run stats."""
    details = {detail.identity: detail for detail in result.details}
    total = len(result.summaries)
    indices = _sample_indices(total, max_display_items)

    title = "Harvested conversations"
    if len(indices) < total:
        title = f"{title} (showing {len(indices)} of {total})"

    table = Table(
        title=title,
        show_header=True,
        header_style="bold magenta",
        width=logger.console.width,
    )
    for name, style in DEFAULT_STYLES.items():
        table.add_column(name.title(), style=style, no_wrap=name != "profile")

    for position, index in enumerate(indices):
        if position > 0 and index != indices[position - 1] + 1:
            table.add_row("...", "", "", "", "", style="dim")
        summary = result.summaries[index]
        detail = details.get(summary.identity)
        table.add_row(
            summary.identity,
            summary.last_activity_timestamp or "",
            str(detail.total_message_count) if detail else "-",
            (detail.first_date or "") if detail else "",
            (detail.last_date or "") if detail else "",
        )

    logger.print(table)

    stop_reason = result.stop_reason.value if result.stop_reason else "unknown"
    logger.print(
        f"[bold]Stopped:[/bold] {stop_reason}  [bold]Passes:[/bold] {result.passes}  "
        f"[bold]Scrolls:[/bold] {result.scroll_attempts}"
    )
    if result.failed_details:
        logger.warning(
            f"{len(result.failed_details)} conversations kept without messages: "
            + ", ".join(result.failed_details)
        )
