"""Install-prompt state and device/browser detection for the PWA install flow.

The deferred install prompt is process-wide state with an explicit
lifecycle: it is set when the platform offers a prompt, cleared when the
app is installed (or the prompt is accepted), and observed through
subscribe() rather than read ad hoc.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)


class InstallPrompt(Protocol):
    """Platform-provided deferred install prompt."""

    async def prompt(self) -> str:
        """Show the prompt and return the user's choice: 'accepted' or 'dismissed'."""


PromptListener = Callable[[Optional[InstallPrompt]], None]


class InstallPromptState:
    """Holds the deferred prompt and notifies subscribers when it changes."""

    def __init__(self):
        self._prompt: Optional[InstallPrompt] = None
        self._listeners: List[PromptListener] = []

    @property
    def prompt(self) -> Optional[InstallPrompt]:
        return self._prompt

    def _set(self, prompt: Optional[InstallPrompt]) -> None:
        self._prompt = prompt
        for listener in list(self._listeners):
            listener(prompt)

    def on_prompt_available(self, prompt: InstallPrompt) -> None:
        """Platform event: the browser offered an install prompt."""
        self._set(prompt)

    def on_app_installed(self) -> None:
        """Platform event: the app was installed."""
        self._set(None)

    def clear(self) -> None:
        self._set(None)

    def subscribe(self, listener: PromptListener) -> Callable[[], None]:
        """Register a listener; it is called at once with the current prompt.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)
        listener(self._prompt)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def trigger_install(self) -> str:
        """Show the native prompt if one is available.

        Returns:
            'accepted', 'dismissed' or 'unavailable'
        """
        if self._prompt is None:
            return "unavailable"
        try:
            outcome = await self._prompt.prompt()
        except Exception as e:
            logger.error("native_install_prompt_failed", error=str(e))
            return "unavailable"
        if outcome == "accepted":
            self.clear()
        return outcome if outcome in ("accepted", "dismissed") else "unavailable"


install_prompt_state = InstallPromptState()


def get_install_prompt_state() -> InstallPromptState:
    """Get the global install prompt state."""
    return install_prompt_state


_TABLET_RE = re.compile(r"ipad|tablet|playbook|silk", re.IGNORECASE)
_IN_APP_RE = re.compile(r"fbav|fban|instagram|twitter|line|snapchat|pinterest", re.IGNORECASE)


def detect_device(user_agent: str, platform: str = "", has_touch: bool = False) -> str:
    """Classify the device from its user agent.

    Tablets are checked first; iPads that report as a Mac are caught by
    the touch flag.
    """
    ua = user_agent.lower()
    platform = platform.lower()
    is_tablet = bool(_TABLET_RE.search(user_agent)) or ("android" in ua and "mobile" not in ua)

    if "ipad" in ua or ("mac" in ua and has_touch and is_tablet):
        return "ipad"
    if is_tablet and "android" in ua:
        return "android-tablet"
    if "iphone" in ua or "ipod" in ua:
        return "iphone"
    if "android" in ua:
        return "android-phone"
    if "cros" in ua:
        return "chromebook"
    if "win" in ua or platform == "windows":
        return "windows"
    if "mac" in ua or platform == "macos":
        return "mac"
    if "linux" in ua:
        return "linux"
    return "unknown"


def detect_browser(user_agent: str, is_brave: bool = False) -> str:
    """Classify the browser. Order matters: Chromium derivatives before Chrome, Safari last."""
    ua = user_agent.lower()

    if _IN_APP_RE.search(user_agent):
        return "in-app-browser"
    if "samsungbrowser" in ua:
        return "samsung-internet"
    if is_brave:
        return "brave"
    if "edg/" in ua:
        return "edge"
    if "opr/" in ua or "opera" in ua:
        return "opera"
    if "firefox" in ua or "fxios" in ua:
        return "firefox"
    if "chrome" in ua or "crios" in ua:
        return "chrome"
    if "safari" in ua:
        return "safari"
    return "unknown"


def is_standalone(display_mode: str = "browser", navigator_standalone: bool = False, referrer: str = "") -> bool:
    """Whether the app already runs installed."""
    return (
        display_mode in ("standalone", "fullscreen", "minimal-ui")
        or navigator_standalone
        or "android-app://" in referrer
    )


@dataclass
class DeviceInfo:
    device: str
    browser: str
    is_standalone: bool
    supports_native_prompt: bool
    is_in_app_browser: bool


def get_device_info(
    user_agent: str,
    platform: str = "",
    has_touch: bool = False,
    is_brave: bool = False,
    display_mode: str = "browser",
    navigator_standalone: bool = False,
    referrer: str = "",
) -> DeviceInfo:
    """Combine device, browser and standalone detection.

    The native prompt exists only outside iOS and outside Safari, Firefox
    and in-app browsers.
    """
    device = detect_device(user_agent, platform, has_touch)
    browser = detect_browser(user_agent, is_brave)
    supports_native_prompt = (
        device not in ("iphone", "ipad")
        and browser not in ("firefox", "safari", "in-app-browser")
    )
    return DeviceInfo(
        device=device,
        browser=browser,
        is_standalone=is_standalone(display_mode, navigator_standalone, referrer),
        supports_native_prompt=supports_native_prompt,
        is_in_app_browser=browser == "in-app-browser",
    )
