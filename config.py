# config.py
# Runtime settings, read once from the environment.

import os

_ENABLED_VALUES = {"1", "true", "yes", "on"}


def env_flag(name, default="false", env=None):
    source = os.environ if env is None else env
    return str(source.get(name, default)).strip().lower() in _ENABLED_VALUES


DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///clusters.db")
HOST = os.environ.get("HOST", "127.0.0.1")
PORT = int(os.environ.get("PORT", "5000"))
DEFAULT_POINT_SET = os.environ.get("DEFAULT_POINT_SET", "default")
DEFAULT_MAX_ITERATIONS = int(os.environ.get("DEFAULT_MAX_ITERATIONS", "100"))
DEBUG_LOGS_VAR = "CLUSTER_DEBUG_LOGS"

# sample point set shipped with a fresh database
SAMPLE_POINTS = [
    (30, 20),
    (40, 25),
    (45, 30),
    (90, 85),
    (85, 80),
    (88, 78),
    (50, 80),
    (55, 75),
    (53, 78),
]
