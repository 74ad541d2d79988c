from decouple import config

# Database Configuration
DB_PATH = config('MOODIFY_DB_PATH', default='moodify.db')
DB_TIMEOUT = config('MOODIFY_DB_TIMEOUT', default=5.0, cast=float)  # seconds

# API Server Configuration
API_HOST = config('MOODIFY_API_HOST', default='127.0.0.1')
API_PORT = config('MOODIFY_API_PORT', default=5050, cast=int)
RELOAD = config('MOODIFY_RELOAD', default=False, cast=bool)

# Logging Configuration
LOG_LEVEL = config('MOODIFY_LOG_LEVEL', default='INFO')
LOG_FILE = config('MOODIFY_LOG_FILE', default=None)

# Ingestion Configuration
BULK_MAX_ATTEMPTS = config('MOODIFY_BULK_MAX_ATTEMPTS', default=3, cast=int)
UNPROCESSED_DEFAULT_LIMIT = config('MOODIFY_UNPROCESSED_LIMIT', default=50, cast=int)
