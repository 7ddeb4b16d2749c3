import logging

logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)
log.handlers = logging.getLogger("__main__").handlers


class ZDCFlowError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.__message = message

    @property
    def message(self):
        return self.__message


class CalibrationInvariantError(ZDCFlowError):
    """An aggregate the availability table reported as usable cannot be used."""

    def __init__(self, message, iteration=None, step=None, name=None):
        super().__init__(message)
        self.__iteration = iteration
        self.__step = step
        self.__name = name

    @property
    def iteration(self):
        return self.__iteration

    @property
    def step(self):
        return self.__step

    @property
    def name(self):
        return self.__name


class AggregateShapeError(CalibrationInvariantError):
    pass


class CalibrationStoreError(ZDCFlowError):
    pass
