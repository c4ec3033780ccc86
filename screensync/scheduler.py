from __future__ import annotations

import threading
from collections.abc import Callable

from screensync.config import SyncConfig
from screensync.runner import print_config

IDLE = "idle"
RUNNING = "running"

QUIT_KEYS = {"q", "Q", "\x03"}


class Scheduler:
    """Two-state run loop: Idle <-> Running.

    Passes execute on the thread that calls ``serve()`` (or ``run_now()``).
    Timer and key-listener threads only call ``trigger()``, which never blocks:
    while a pass is in flight it logs and returns False.
    """

    def __init__(
        self,
        config: SyncConfig,
        run_pass: Callable[[], int],
        *,
        timer_factory: Callable[[float, Callable[[], object]], threading.Timer] = threading.Timer,
    ) -> None:
        self.config = config
        self._run_pass = run_pass
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._state = IDLE
        self._timer: threading.Timer | None = None
        self._wake = threading.Event()
        self._stop = threading.Event()
        self.last_exit_code: int | None = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def trigger(self) -> bool:
        with self._lock:
            if self._state == RUNNING:
                print("[Scheduler] Already running..")
                return False
        self._wake.set()
        return True

    def run_now(self) -> int | None:
        with self._lock:
            if self._state == RUNNING:
                print("[Scheduler] Already running..")
                return None
            self._state = RUNNING
            self._cancel_timer()

        try:
            print_config(self.config)
            code = self._run_pass()
        finally:
            with self._lock:
                self._state = IDLE

        self.last_exit_code = code
        if not self._stop.is_set():
            self._arm_timer()
        return code

    def serve(self) -> int:
        """Run the first pass now, then one pass per trigger until shutdown."""
        self._wake.set()
        while True:
            self._wake.wait()
            self._wake.clear()
            if self._stop.is_set():
                break
            self.run_now()
        self._cancel_timer()
        return self.last_exit_code or 0

    def shutdown(self) -> None:
        self._stop.set()
        self._wake.set()
        with self._lock:
            self._cancel_timer()

    def _arm_timer(self) -> None:
        retry = self.config.retry
        if retry <= 0:
            return
        print(f"Waiting for next run in {retry:g} minutes (press key to trigger manually)")
        timer = self._timer_factory(retry * 60, self.trigger)
        timer.daemon = True
        with self._lock:
            self._cancel_timer()
            self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def listen_keys(self, getchar: Callable[[], str]) -> None:
        """Blocking key loop: quit keys stop the scheduler, any other key triggers a pass."""
        while not self._stop.is_set():
            try:
                ch = getchar()
            except (KeyboardInterrupt, EOFError):
                ch = "\x03"
            if ch in QUIT_KEYS:
                print("Exiting..")
                self.shutdown()
                return
            self.trigger()

    def start_key_listener(self, getchar: Callable[[], str]) -> threading.Thread:
        thread = threading.Thread(target=self.listen_keys, args=(getchar,), name="screensync-keys", daemon=True)
        thread.start()
        return thread
