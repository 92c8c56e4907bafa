import logging

from config import DEBUG_LOGS_VAR, env_flag


def _debug_enabled(env=None) -> bool:
    return env_flag(DEBUG_LOGS_VAR, env=env)


def get_logger(name: str = "pointcluster") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
        logger.addHandler(handler)
        logger.propagate = False

    logger.setLevel(logging.DEBUG if _debug_enabled() else logging.WARNING)
    return logger
