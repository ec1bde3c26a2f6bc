import os
import threading
import multiprocessing
import config

LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}

_frame_id = None


def set_frame(frame_id):
    global _frame_id
    _frame_id = frame_id


def enabled(scope, level="INFO"):
    if scope == "SYNC" and level in ("DEBUG", "INFO") and not getattr(config, "LOG_SYNC", False):
        return False
    threshold = LEVELS.get(getattr(config, "LOG_LEVEL", "INFO"), 20)
    return LEVELS.get(level, 20) >= threshold


def log(scope, msg, level="INFO"):
    if not enabled(scope, level):
        return
    pid = os.getpid()
    proc = multiprocessing.current_process().name
    thread = threading.current_thread().name
    frame = _frame_id
    frame_tag = f" f{frame}" if frame is not None else ""
    text = f"[{level}{frame_tag} pid{pid} proc{proc} thr{thread} {scope}] {msg}"
    use_color = getattr(config, "LOG_COLOR", True) and os.getenv("NO_COLOR") is None
    if use_color:
        # Main process + main thread: default (no color).
        if proc == "MainProcess" and thread != "MainThread":
            # Main process worker thread.
            text = f"\x1b[32m{text}\x1b[0m"
        elif proc != "MainProcess":
            # Server/external process.
            text = f"\x1b[33m{text}\x1b[0m"
    print(text)
