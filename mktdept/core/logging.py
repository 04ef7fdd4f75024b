import logging
import sys


class ContextFormatter(logging.Formatter):
    """Formatter that tolerates records without post/stage context."""
    def format(self, record):
        if not hasattr(record, 'post'):
            record.post = '-'
        if not hasattr(record, 'stage'):
            record.stage = '-'
        return super().format(record)


def configure_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    formatter = ContextFormatter(
        "%(asctime)s %(levelname)s %(name)s [post=%(post)s stage=%(stage)s] - %(message)s"
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [handler]

    # Publishing runs are audited per project when a log file is given
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
    )
