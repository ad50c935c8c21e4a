import os


def _csv(value):
    return [v.strip() for v in value.split(',') if v.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///memory_matchers.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Seconds both flipped cards stay visible before the pair is judged
    EVALUATION_DELAY_SEC = float(os.environ.get('EVALUATION_DELAY_SEC', '0.5'))
    # Face pool cards are dealt from; empty means the built-in emoji set
    CARD_FACES = _csv(os.environ.get('CARD_FACES', ''))
    # Grid sizes offered on the mode selection screen
    GRID_MODES = _csv(os.environ.get('GRID_MODES', '2x2,2x3,2x6,3x4,4x4,4x5'))
    CORS_ORIGINS = _csv(os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
    ))
    # Optional: debounce repeated taps from the same client (ms). 0 disables.
    TAP_DEBOUNCE_MS = int(os.environ.get('TAP_DEBOUNCE_MS', '0'))
    # Grace period before a game whose owner socket disconnected is dropped (sec)
    SESSION_END_GRACE_SEC = float(os.environ.get('SESSION_END_GRACE_SEC', '2.0'))
    # Games with no HTTP activity for this long are dropped on the next create (sec). 0 disables.
    SESSION_IDLE_TIMEOUT_SEC = float(os.environ.get('SESSION_IDLE_TIMEOUT_SEC', '1800'))
