import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma-separated list of origins allowed to open sockets / call the API
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
        ).split(',') if o.strip()
    ]
    # Leader send-player cooldown per room (seconds)
    LEADER_COOLDOWN_SEC = int(os.environ.get('LEADER_COOLDOWN_SEC', '120'))
    # Cooldown timer driver period (seconds)
    TIMER_TICK_SEC = float(os.environ.get('TIMER_TICK_SEC', '1'))
    # Optional: heartbeat interval for timer worker logs (ticks). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    # Log every inbound socket event (noisy)
    SOCKET_DEBUG_LOG = os.environ.get('SOCKET_DEBUG_LOG', '0') in ('1', 'true', 'True')
