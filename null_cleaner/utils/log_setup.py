import logging
import sys

INVALID_RECORDS_LOGGER = 'null_cleaner.invalid_records'
STATISTICS_LOGGER = 'null_cleaner.statistics'


def _file_handler(path: str, fmt: logging.Formatter) -> logging.Handler:
    handler = logging.FileHandler(path, mode='a', encoding='utf-8')
    handler.setFormatter(fmt)
    return handler


def setup_logging(cfg):
    """Configure the root console handler plus optional per-record / statistics files."""
    root = logging.getLogger()
    fmt = logging.Formatter(cfg.LOG_FORMAT, datefmt=cfg.LOG_DATE_FORMAT)
    if not root.handlers:  # don't double add when called twice
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(fmt)
        root.addHandler(h)
    root.setLevel(getattr(logging, cfg.LOG_LEVEL, logging.INFO))

    file_fmt = logging.Formatter('%(asctime)s %(levelname)s %(message)s')
    for logger_name, path in ((INVALID_RECORDS_LOGGER, cfg.INVALID_RECORD_LOG_FILE),
                              (STATISTICS_LOGGER, cfg.STATISTICS_LOG_FILE)):
        if not path:
            continue
        target = logging.getLogger(logger_name)
        if any(isinstance(h, logging.FileHandler) for h in target.handlers):
            continue
        try:
            target.addHandler(_file_handler(path, file_fmt))
        except OSError as e:
            logging.getLogger(__name__).warning('Cannot open log file %s for %s: %s', path, logger_name, e)
    # pymongo heartbeat chatter
    logging.getLogger('pymongo').setLevel(logging.WARNING)
