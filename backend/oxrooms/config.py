import os


def _env_bool(name, default='0'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///oxrooms.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173',
        ).split(',') if o.strip()
    ]
    # Room codes: length and how many fresh codes to try on a unique-constraint collision
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    ROOM_CODE_ATTEMPTS = int(os.environ.get('ROOM_CODE_ATTEMPTS', '5'))
    # Re-run the rules engine on every board write and reject out-of-turn or illegal ones
    ENFORCE_TURN_ORDER = _env_bool('ENFORCE_TURN_ORDER')
    # Expiry (seconds)
    ROOM_WAITING_TTL_SEC = int(os.environ.get('ROOM_WAITING_TTL_SEC', '3600'))
    ROOM_FINISHED_TTL_SEC = int(os.environ.get('ROOM_FINISHED_TTL_SEC', '1800'))
    ROOM_IDLE_TTL_SEC = int(os.environ.get('ROOM_IDLE_TTL_SEC', '86400'))
    BCRYPT_LOG_ROUNDS = int(os.environ.get('BCRYPT_LOG_ROUNDS', '12'))
