import logging
from functools import wraps

from pprintpp import pformat

__all__ = ["logger", "log_state"]

logger = logging.getLogger("cardano_txbuilder")

_handler = logging.StreamHandler()
_handler.setFormatter(
    logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
)
logger.addHandler(_handler)


def log_state(func):
    """Log the state of the receiver once ``func`` returns or raises.

    The state is logged at debug level on success and at warning level when ``func``
    raises. The exception is re-raised.
    """

    @wraps(func)
    def wrapper(obj, *args, **kwargs):
        level = logging.WARNING
        try:
            result = func(obj, *args, **kwargs)
            level = logging.DEBUG
            return result
        finally:
            if logger.isEnabledFor(level):
                logger.log(
                    level,
                    f"{type(obj).__name__}.{func.__name__} state:\n"
                    f"{pformat(vars(obj), indent=2)}",
                )

    return wrapper
