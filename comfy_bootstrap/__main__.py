"""
Entry point for running comfy_bootstrap as a module.
Usage: python -m comfy_bootstrap [run|sync-plugins|build-index]
"""
import logging
import sys

# Configure logging BEFORE any imports that might create loggers
root_logger = logging.getLogger()

for handler in root_logger.handlers[:]:
    root_logger.removeHandler(handler)
    handler.close()


class DuplicateFilter(logging.Filter):
    """Filter to prevent duplicate log messages within a short time window"""
    def __init__(self):
        super().__init__()
        self.last_message_key = None
        self.last_timestamp = None
        self.duplicate_window = 0.1  # 100ms window to detect duplicates

    def filter(self, record):
        msg_key = (record.levelname, record.getMessage())
        now = record.created

        if (msg_key == self.last_message_key and
            self.last_timestamp is not None and
            abs(now - self.last_timestamp) < self.duplicate_window):
            return False

        self.last_message_key = msg_key
        self.last_timestamp = now
        return True


handler = logging.StreamHandler(sys.stderr)
handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
handler.addFilter(DuplicateFilter())
root_logger.addHandler(handler)
root_logger.setLevel(logging.INFO)

# Suppress noisy libraries
for noisy in ("httpx", "httpcore", "urllib3", "huggingface_hub", "filelock"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

from .cli import main  # noqa: E402

logger = logging.getLogger(__name__)


def console_main():
    try:
        return main()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting.")
        return 130


if __name__ == "__main__":
    sys.exit(console_main())
