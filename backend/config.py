import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///whosaid.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Session lifetime (seconds); expired sessions read as not found
    SESSION_TTL_SEC = int(os.environ.get('SESSION_TTL_SEC', str(24 * 60 * 60)))
    # Bounded retries when a freshly generated code collides
    CODE_GENERATION_ATTEMPTS = int(os.environ.get('CODE_GENERATION_ATTEMPTS', '10'))
    CORS_ORIGINS = [o.strip() for o in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173'
    ).split(',') if o.strip()]
    # Per-client request limits (requests per window)
    RATE_LIMIT_ENABLED = os.environ.get('RATE_LIMIT_ENABLED', '1') not in ('0', 'false', 'False')
    RATE_LIMIT_WINDOW_SEC = int(os.environ.get('RATE_LIMIT_WINDOW_SEC', '60'))
    RATE_LIMIT_CREATE = int(os.environ.get('RATE_LIMIT_CREATE', '10'))
    RATE_LIMIT_JOIN = int(os.environ.get('RATE_LIMIT_JOIN', '20'))
    RATE_LIMIT_STATE = int(os.environ.get('RATE_LIMIT_STATE', '60'))
    RATE_LIMIT_START_ROUND = int(os.environ.get('RATE_LIMIT_START_ROUND', '20'))
    RATE_LIMIT_RESPONSE = int(os.environ.get('RATE_LIMIT_RESPONSE', '30'))
    RATE_LIMIT_GUESS = int(os.environ.get('RATE_LIMIT_GUESS', '30'))
    RATE_LIMIT_DISCONNECT = int(os.environ.get('RATE_LIMIT_DISCONNECT', '30'))
    RATE_LIMIT_END = int(os.environ.get('RATE_LIMIT_END', '10'))
