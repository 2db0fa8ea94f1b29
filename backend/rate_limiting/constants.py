from backend.config.settings import config_settings

DEFAULT_LIMIT = config_settings.API_RATE_LIMIT      # requests per window per client
DEFAULT_WINDOW = config_settings.RATE_LIMIT_WINDOW  # seconds
AUTH_LIMIT = config_settings.AUTH_RATE_LIMIT
RATE_LIMIT_PREFIX = "rl"    # key prefix
REDIS_TIMEOUT_SECONDS = 0.5
FAIL_OPEN = True                  # if redis is unavailable, allow requests (True) or deny (False)
USE_IN_MEMORY_FALLBACK = True     # local fallback when redis fails (not distributed)
