# ───────────────────────────────────────────────────────────
import logging
from rich.logging import RichHandler


def configure(level: str = "INFO", rich: bool = True) -> None:
    handlers = (
        [RichHandler(rich_tracebacks=True, show_time=False, show_path=False)]
        if rich
        else [logging.StreamHandler()]
    )
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s" if rich else "%(levelname)s │ %(name)s │ %(message)s",
        handlers=handlers,
        force=True,
    )
