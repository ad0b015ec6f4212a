import logging
import time

from rich.logging import RichHandler


def setup_logging(level="INFO"):
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def fmt_ts() -> str:
    h, m, s = time.strftime("%H:%M:%S").split(":")
    return f"[dim][[/dim][white]{h}[/white][dim]:[/dim][white]{m}[/white][dim]:[/dim][white]{s}[/white][dim]][/dim]"
