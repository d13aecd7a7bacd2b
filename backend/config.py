import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Match rules, fixed per room at creation
    MATCH_OVERS = int(os.environ.get('MATCH_OVERS', '2'))
    BALLS_PER_OVER = int(os.environ.get('BALLS_PER_OVER', '6'))
    MAX_WICKETS = int(os.environ.get('MAX_WICKETS', '5'))
    # Auto-advance timers (seconds)
    BALL_TIMEOUT_SEC = float(os.environ.get('BALL_TIMEOUT_SEC', '5'))
    RESULT_DISPLAY_SEC = float(os.environ.get('RESULT_DISPLAY_SEC', '2'))
    NEXT_BALL_DELAY_SEC = float(os.environ.get('NEXT_BALL_DELAY_SEC', '3'))
    INNINGS_BREAK_SEC = float(os.environ.get('INNINGS_BREAK_SEC', '3'))
    TOSS_DELAY_SEC = float(os.environ.get('TOSS_DELAY_SEC', '3'))
    # Room codes and naming
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    DEFAULT_PLAYER_NAME = os.environ.get('DEFAULT_PLAYER_NAME', 'Player {slot}')
    # Number of trailing balls sent with every ball-result
    BALL_HISTORY_WINDOW = int(os.environ.get('BALL_HISTORY_WINDOW', '4'))
    # Optional: fix toss and fallback picks. Unset uses system entropy.
    RANDOM_SEED = os.environ.get('RANDOM_SEED')
