"""
Rich Logging Module for the Entity Fusion Engine.

Provides colorful, formatted logging with tables and panels.
"""

import logging
import os
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

# Custom theme for fusion output
FUSION_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "data": "dim cyan",
        "highlight": "bold yellow",
        "muted": "dim white",
        "header": "bold cyan",
        "border": "bright_black",
        "fusion": "bold magenta",
    }
)

# Initialize Rich console with custom theme
console = Console(theme=FUSION_THEME, stderr=True)


class FusionLogger:
    """Custom logger with Rich formatting for the fusion engine."""

    def __init__(self, name: str = "fusion", level: str | None = None):
        """Initialize the logger with Rich handler."""
        self.console = console
        self.name = name

        # Set up Python logging with Rich handler
        log_level = level or os.getenv("LOG_LEVEL", "INFO")
        logging.basicConfig(
            level=getattr(logging, log_level.upper()),
            format="%(message)s",
            datefmt="[%X]",
            handlers=[
                RichHandler(
                    console=self.console,
                    show_time=True,
                    show_path=False,
                    rich_tracebacks=True,
                    markup=True,
                )
            ],
        )
        self._logger = logging.getLogger(name)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message with cyan color."""
        self._logger.info(f"[info]{message}[/info]", **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message with yellow color."""
        self._logger.warning(f"[warning]⚠️  {message}[/warning]", **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message with red color."""
        self._logger.error(f"[error]❌ {message}[/error]", **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._logger.debug(f"[muted]{message}[/muted]", **kwargs)

    def fusion(self, group_size: int, strategy: str, confidence: float) -> None:
        """Log a completed group fusion."""
        self._logger.debug(
            f"[fusion]🔗 FUSED:[/fusion] {group_size} entities via "
            f"[bold]{strategy}[/bold] → [data]{confidence:.3f}[/data]"
        )

    def panel(
        self,
        content: str,
        title: str = "",
        style: str = "border",
        subtitle: str | None = None,
    ) -> None:
        """Display content in a styled panel."""
        self.console.print(
            Panel(
                content,
                title=f"[header]{title}[/header]" if title else None,
                subtitle=f"[muted]{subtitle}[/muted]" if subtitle else None,
                border_style=style,
                padding=(1, 2),
            )
        )

    def table(
        self,
        title: str,
        columns: list[str],
        rows: list[list[Any]],
        show_lines: bool = False,
    ) -> None:
        """Display data in a formatted table."""
        table = Table(
            title=f"[header]{title}[/header]",
            show_header=True,
            header_style="bold cyan",
            border_style="border",
            show_lines=show_lines,
        )

        for col in columns:
            table.add_column(col)

        for row in rows:
            table.add_row(*[str(cell) for cell in row])

        self.console.print(table)

    def result_summary(
        self,
        title: str,
        status: str,
        count: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Display a formatted result summary."""
        if status == "success":
            status_icon = "✅"
            status_style = "success"
        elif status == "error":
            status_icon = "❌"
            status_style = "error"
        else:
            status_icon = "⚠️"
            status_style = "warning"

        lines = [
            f"[{status_style}]{status_icon} Status: {status.upper()}[/{status_style}]",
            f"[highlight]📊 Results: {count}[/highlight]",
        ]

        if details:
            lines.append("")
            lines.append("[muted]Details:[/muted]")
            for key, value in details.items():
                lines.append(f"  • {key}: {value}")

        self.panel(
            "\n".join(lines),
            title=f"🔗 {title}",
            subtitle=datetime.now().strftime("%H:%M:%S"),
        )


# Global logger instance
_logger: FusionLogger | None = None


def get_logger() -> FusionLogger:
    """Get or create the global logger instance."""
    global _logger
    if _logger is None:
        _logger = FusionLogger()
    return _logger


# Convenience functions
def log_result_table(
    title: str,
    columns: list[str],
    rows: list[list[Any]],
) -> None:
    """Display results in a table."""
    get_logger().table(title, columns, rows)


def log_config_status(configs: dict[str, tuple[bool, str]]) -> None:
    """Display configuration status.

    Args:
        configs: Dict of config_name -> (is_set, description)
    """
    logger = get_logger()

    table = Table(
        title="[header]⚙️ Fusion Configuration[/header]",
        show_header=True,
        header_style="bold cyan",
        border_style="border",
    )

    table.add_column("Config", style="bold")
    table.add_column("Status")
    table.add_column("Description", style="dim")

    for name, (is_set, description) in configs.items():
        status = "[success]✅ Set[/success]" if is_set else "[warning]⚠️ Not Set[/warning]"
        table.add_row(name, status, description)

    logger.console.print(table)
