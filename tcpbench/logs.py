import logging
import sys

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


class _BelowWarning(logging.Filter):
    def filter(self, record):
        return record.levelno < logging.WARNING


def setup_logging(verbose: bool = False) -> None:
    """Status lines go to stdout, warnings and errors to stderr."""
    formatter = logging.Formatter(LOG_FORMAT)

    out = logging.StreamHandler(sys.stdout)
    out.setFormatter(formatter)
    out.addFilter(_BelowWarning())

    err = logging.StreamHandler(sys.stderr)
    err.setFormatter(formatter)
    err.setLevel(logging.WARNING)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[out, err],
        force=True,
    )
