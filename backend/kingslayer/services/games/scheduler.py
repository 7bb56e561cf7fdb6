import logging
import time
from typing import List

from kingslayer import socketio
from kingslayer.models import GameSession

logger = logging.getLogger(__name__)

NAMESPACE = '/ws'


def tick_cooldowns(registry) -> List[GameSession]:
    """Advance every playing game's room cooldowns by one second.

    Cooldowns floor at zero and are never raised here. Games outside the
    playing phase are skipped. Returns the games that were visited.
    """
    ticked = []
    for game in registry.playing_games():
        before = [t.cooldown for t in game.timers]
        changed = [t.tick() for t in game.timers]
        if any(changed):
            logger.debug(
                f"[timer-tick] game={game.room_code} room0 {before[0]} -> {game.timers[0].cooldown}, "
                f"room1 {before[1]} -> {game.timers[1].cooldown}"
            )
        ticked.append(game)
    return ticked


def broadcast_timers(games: List[GameSession]) -> None:
    """Send each connected player the timers of their own game only."""
    for game in games:
        payload = game.timer_values()
        for player in game.players.values():
            if player.connected and player.sid:
                socketio.emit('timer_update', payload, to=player.sid, namespace=NAMESPACE)


def run_tick(registry) -> List[GameSession]:
    with registry.lock:
        games = tick_cooldowns(registry)
        broadcast_timers(games)
    return games


def start_cooldown_timer(app, registry):
    """Start the process-wide cooldown driver as a Socket.IO background task.

    - No-ops in TESTING mode unless ENABLE_TIMER_IN_TESTS is set
    - One driver per app; repeated calls return the running task
    - Logs a heartbeat every TIMER_HEARTBEAT_SEC ticks when enabled
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_TIMER_IN_TESTS'):
        return None
    if app.extensions.get('cooldown_timer') is not None:
        return app.extensions['cooldown_timer']

    interval = float(app.config.get('TIMER_TICK_SEC', 1))
    try:
        hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0))
    except (TypeError, ValueError):
        hb = 0

    def _worker():
        ticks = 0
        app.logger.info(f"[timer-start] period={interval}s")
        next_at = time.monotonic()
        while True:
            # fixed-rate: sleep until the next deadline, not for a full interval
            next_at += interval
            socketio.sleep(max(0.0, next_at - time.monotonic()))
            with app.app_context():
                try:
                    games = run_tick(registry)
                except Exception:
                    # keep the driver alive across a failed tick
                    app.logger.exception("[timer-error] tick failed")
                    continue
            ticks += 1
            if hb > 0 and ticks % hb == 0:
                app.logger.info(f"[timer-heartbeat] ticks={ticks} playing_games={len(games)} live_games={len(registry)}")

    task = socketio.start_background_task(_worker)
    app.extensions['cooldown_timer'] = task
    return task
