import logging

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers


class FirstEventLog:
    """Forward records to a logger only until the first event has been processed.

    Examples
    --------
    >>> first = FirstEventLog(log)
    >>> first.info("shown")
    >>> first.increment()
    >>> first.info("silenced")
    """

    def __init__(self, logger=None):
        self._logger = log if logger is None else logger
        self._counter = 0

    @property
    def counter(self):
        return self._counter

    @property
    def active(self):
        return self._counter < 1

    def increment(self):
        self._counter += 1

    def reset(self):
        self._counter = 0

    def log(self, level, msg, *args, **kwargs):
        if self.active:
            self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        self.log(logging.ERROR, msg, *args, **kwargs)
