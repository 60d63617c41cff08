"""
Logging Configuration
Sets up the package logger for simulations and the command line runner.

Per-step progress records carry a ``step`` attribute (``extra={"step": n}``);
StepIntervalFilter thins them out so long verbose runs stay readable.
"""
import logging
import sys
from typing import Optional


class StepIntervalFilter(logging.Filter):
    """Passes per-step records only every ``interval`` steps; other records always pass."""

    def __init__(self, interval: int = 1) -> None:
        super().__init__()
        if interval < 1:
            raise ValueError(f"Step log interval must be >= 1, got {interval}.")
        self.interval = interval

    def filter(self, record: logging.LogRecord) -> bool:
        step = getattr(record, "step", None)
        return step is None or step % self.interval == 0


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    step_interval: int = 1,
) -> None:
    """
    Configures the logger for the 'plasmafurnace' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
        step_interval: Keep per-step progress records only every n-th step.
    """
    logger = logging.getLogger("plasmafurnace")
    logger.setLevel(level)

    # Repeated calls (tests, several runs in one session) must not stack handlers
    if logger.hasHandlers():
        logger.handlers.clear()

    # Format: Time - Module - Level - Message
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    step_filter = StepIntervalFilter(step_interval)

    # 1. Console Handler (stdout)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(step_filter)
    logger.addHandler(console_handler)

    # 2. File Handler (Optional), same thinning so console and file agree
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(step_filter)
        logger.addHandler(file_handler)

    logger.info("Logging initialized.")
