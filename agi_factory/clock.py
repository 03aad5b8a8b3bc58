"""Real-time driver for GameEngine.tick()."""
import logging
import threading

logger = logging.getLogger(__name__)

class GameClock:
    """Calls ``engine.tick()`` every ``interval`` seconds on a worker thread.

    Ticks are serialized by a lock so they never overlap with each other or
    with ``reset()``. Pausing cancels the timer; missed ticks are not
    replayed.
    """

    def __init__(self, engine, interval=None):
        """Initialize clock."""
        self.engine = engine
        self.interval = float(interval or engine.tick_interval)
        if self.interval <= 0:
            raise ValueError("Clock interval must be positive")
        self.lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Start the engine and a timer thread."""
        with self.lock:
            self.engine.start()
        if self.running:
            return
        # Per-thread event: a cancelled thread still winding down keeps its own
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop,), name='game-clock', daemon=True)
        self._thread.start()

    def pause(self, timeout=None):
        """Pause the engine and cancel the timer thread; ``start()`` resumes."""
        with self.lock:
            self.engine.pause()
        self._stop.set()
        thread, self._thread = self._thread, None
        # A tick subscriber may pause from the clock thread itself
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def stop(self, timeout=None):
        """Pause and wait for the timer thread to exit."""
        self.pause(timeout)

    def reset(self):
        """Reset the engine between ticks."""
        with self.lock:
            self.engine.reset()

    def _run(self, stop):
        while not stop.wait(self.interval):
            with self.lock:
                try:
                    self.engine.tick(self.interval)
                except Exception:
                    logger.exception("Tick failed")
