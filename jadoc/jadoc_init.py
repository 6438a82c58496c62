import logging
import os
import sys


class JADOC:
    """Holds the jadoc configuration
    Configuration settings are stored as class variables, they can be overridden by
    the flask app config or by the kwargs passed to `JadocAPI`
    """

    # Recursion cap for relationships flagged "include by default"
    MAX_INCLUSION_DEPTH = 42
    # Thread pool size used when extracting includes for a collection, 1 disables the fan-out
    INCLUSION_WORKERS = 4
    # Url prefix used in the "links", if empty the request url root is used
    SERVICE_URL = ""
    DEFAULT_PAGE_LIMIT = 250
    MAX_PAGE_LIMIT = 100000
    # Accept the "id" of a resource object in a POST body
    ALLOW_CLIENT_GENERATED_IDS = False
    LOGLEVEL = logging.WARNING

    @classmethod
    def configure(cls, **kwargs) -> None:
        """
        Set configuration options
        """
        for conf_name, conf_val in kwargs.items():
            setattr(cls, conf_name, conf_val)

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        Create the "jadoc" logger, messages are written to stderr as "[time] LEVEL: message"
        A logger that was already configured by the application is returned unchanged
        """
        log = logging.getLogger("jadoc")
        if log.level != logging.NOTSET:
            return log
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s"))
        log.addHandler(handler)
        log.setLevel(loglevel)
        return log


def get_env_loglevel(default: int = logging.WARNING) -> int:
    """
    :return: the numeric log level set in the DEBUG environment variable, eg. DEBUG=10
    """
    env_level = os.getenv("DEBUG")
    if env_level is None:
        return default
    try:
        return int(env_level)
    except ValueError:  # pragma: no cover
        print(f'Invalid LogLevel in DEBUG Environment Variable! "{env_level}"')
        return logging.INFO


log = JADOC.init_logging(get_env_loglevel())
