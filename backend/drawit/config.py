import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Socket.IO async mode ("" picks eventlet or threading per platform)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Rooms
    MAX_PLAYERS = int(os.environ.get("MAX_PLAYERS", "8"))
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "2"))
    ROOM_CODE_LENGTH = int(os.environ.get("ROOM_CODE_LENGTH", "6"))
    EMPTY_ROOM_TTL_SEC = int(os.environ.get("EMPTY_ROOM_TTL_SEC", "60"))

    # Game
    TOTAL_ROUNDS = int(os.environ.get("TOTAL_ROUNDS", "3"))
    TURN_DURATION_SEC = int(os.environ.get("TURN_DURATION_SEC", "80"))
    WORD_CHOICES_COUNT = int(os.environ.get("WORD_CHOICES_COUNT", "3"))
    CHOOSE_DURATION_SEC = int(os.environ.get("CHOOSE_DURATION_SEC", "15"))
    CHAT_HISTORY_LIMIT = int(os.environ.get("CHAT_HISTORY_LIMIT", "200"))

    # Phase delays
    ROUND_START_DELAY_SEC = int(os.environ.get("ROUND_START_DELAY_SEC", "3"))
    TURN_END_DELAY_SEC = int(os.environ.get("TURN_END_DELAY_SEC", "6"))
    ROUND_END_DELAY_SEC = int(os.environ.get("ROUND_END_DELAY_SEC", "8"))
    ALL_GUESSED_DELAY_SEC = int(os.environ.get("ALL_GUESSED_DELAY_SEC", "2"))
