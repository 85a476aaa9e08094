"""Session-bus service that receives window data pushed by the KWin script."""
from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from window_bridge.errors import WindowBridgeError

BUS_NAME = "org.windowbridge.WindowBridge"
OBJECT_PATH = "/org/windowbridge/WindowBridge"

_LOGGER = logging.getLogger("WindowBridge.DBus")


class WindowBridgeService:
    """Holds the latest window list and active window as JSON strings.

    Writes arrive on the GLib main loop thread; reads happen on the caller's
    thread.
    """

    dbus = """
    <node>
      <interface name='org.windowbridge.WindowBridge'>
        <method name='UpdateWindows'>
          <arg type='s' name='windows_json' direction='in'/>
        </method>
        <method name='UpdateActiveWindow'>
          <arg type='s' name='window_json' direction='in'/>
        </method>
      </interface>
    </node>
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._windows_json = ""
        self._active_window_json = ""
        self._registration: Any = None
        self._loop: Any = None
        self._loop_thread: Optional[threading.Thread] = None

    @classmethod
    def initialize(cls, bus: Any = None, *, run_loop: bool = True) -> "WindowBridgeService":
        """Publish a new service on the session bus and start dispatching calls."""
        service = cls()
        service.publish(bus, run_loop=run_loop)
        return service

    # D-Bus methods ------------------------------------------------------

    def UpdateWindows(self, windows_json: str) -> None:  # noqa: N802 - D-Bus naming
        with self._lock:
            self._windows_json = windows_json or ""
        _LOGGER.debug("Received window list from KWin (%d bytes)", len(windows_json or ""))

    def UpdateActiveWindow(self, window_json: str) -> None:  # noqa: N802 - D-Bus naming
        with self._lock:
            self._active_window_json = window_json or ""

    # Accessors ----------------------------------------------------------

    @property
    def windows_json(self) -> str:
        with self._lock:
            return self._windows_json

    @property
    def active_window_json(self) -> str:
        with self._lock:
            return self._active_window_json

    @property
    def published(self) -> bool:
        return self._registration is not None

    # Lifecycle ----------------------------------------------------------

    def publish(self, bus: Any = None, *, run_loop: bool = True) -> None:
        if self._registration is not None:
            return
        try:
            if bus is None:
                from pydbus import SessionBus  # type: ignore

                bus = SessionBus()
            self._registration = bus.publish(BUS_NAME, (OBJECT_PATH, self))
        except Exception as exc:
            _LOGGER.error("Failed to publish %s on the session bus: %s", BUS_NAME, exc)
            raise WindowBridgeError(f"Unable to publish D-Bus service {BUS_NAME}: {exc}") from exc
        _LOGGER.debug("Published D-Bus service %s at %s", BUS_NAME, OBJECT_PATH)
        if run_loop:
            self._start_loop()

    def _start_loop(self) -> None:
        from gi.repository import GLib  # type: ignore

        self._loop = GLib.MainLoop()
        self._loop_thread = threading.Thread(target=self._loop.run, name="WindowBridge-DBusLoop", daemon=True)
        self._loop_thread.start()

    def dispose(self) -> None:
        registration = self._registration
        self._registration = None
        if registration is not None:
            try:
                registration.unpublish()
            except Exception as exc:
                _LOGGER.debug("Unpublishing %s failed: %s", BUS_NAME, exc)
        if self._loop is not None:
            self._loop.quit()
            self._loop = None
        if self._loop_thread is not None:
            self._loop_thread.join(timeout=2.0)
            self._loop_thread = None
