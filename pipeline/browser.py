"""Browser launch with an ordered fallback chain.

Strategies are tried strictly in order; the first one that launches wins:

  1. system-chromium   the Chromium binary at ``settings.chromium_executable_path``
  2. headless-shell    Playwright's headless shell build, with the serverless flag set
  3. bundled-chromium  Playwright's full bundled Chromium, baseline flags only

One browser per render; ``launched_browser`` closes it on every exit path.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Sequence

from playwright.sync_api import Browser, BrowserType

from settings import Settings

logger = logging.getLogger(__name__)

# Flags every strategy starts from
BASELINE_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
    "--disable-accelerated-2d-canvas",
)

# Constrained-container flags for the headless shell, merged ahead of the baseline
SERVERLESS_ARGS = (
    "--allow-pre-commit-input",
    "--disable-background-networking",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-breakpad",
    "--disable-component-extensions-with-background-pages",
    "--disable-extensions",
    "--disable-ipc-flooding-protection",
    "--disable-renderer-backgrounding",
    "--font-render-hinting=none",
    "--hide-scrollbars",
    "--mute-audio",
    "--no-default-browser-check",
    "--single-process",
)

Launcher = Callable[[BrowserType, list[str]], Browser]


@dataclass(frozen=True)
class LaunchStrategy:
    """A named way of starting Chromium. ``launch`` receives the caller's extra flags."""
    name: str
    launch: Launcher


class BrowserLaunchError(RuntimeError):
    """Every launch strategy failed."""

    def __init__(self, label: str, failures: list[tuple[str, Exception]]) -> None:
        self.label = label
        self.failures = failures
        summary = "; ".join(f"{name}: {exc}" for name, exc in failures)
        super().__init__(f"Could not launch a browser for {label} ({summary})")


def dedupe(*arg_lists: Sequence[str]) -> list[str]:
    """Concatenate flag lists, keeping the first occurrence of each flag."""
    return list(dict.fromkeys(arg for args in arg_lists for arg in args))


def default_strategies(settings: Settings) -> list[LaunchStrategy]:
    executable = str(settings.chromium_executable_path)

    def system_chromium(chromium: BrowserType, extra: list[str]) -> Browser:
        return chromium.launch(
            executable_path=executable,
            headless=True,
            args=dedupe(BASELINE_ARGS, extra),
        )

    def headless_shell(chromium: BrowserType, extra: list[str]) -> Browser:
        return chromium.launch(
            headless=True,
            args=dedupe(SERVERLESS_ARGS, BASELINE_ARGS, extra),
        )

    def bundled_chromium(chromium: BrowserType, extra: list[str]) -> Browser:
        return chromium.launch(
            channel="chromium",
            headless=True,
            args=list(BASELINE_ARGS),
        )

    return [
        LaunchStrategy("system-chromium", system_chromium),
        LaunchStrategy("headless-shell", headless_shell),
        LaunchStrategy("bundled-chromium", bundled_chromium),
    ]


def acquire_browser(
    chromium: BrowserType,
    strategies: Sequence[LaunchStrategy],
    label: str,
    extra_args: Sequence[str] = (),
) -> Browser:
    """Launch with the first strategy that succeeds.

    Raises BrowserLaunchError carrying every (strategy, error) pair when all fail.
    """
    failures: list[tuple[str, Exception]] = []
    for position, strategy in enumerate(strategies):
        logger.info("Trying %s for %s", strategy.name, label)
        try:
            browser = strategy.launch(chromium, list(extra_args))
        except Exception as exc:
            failures.append((strategy.name, exc))
            if position + 1 < len(strategies):
                logger.warning("%s failed for %s (%s). Trying %s", strategy.name, label, exc, strategies[position + 1].name)
            else:
                logger.error("%s failed for %s (%s). No launch strategies left", strategy.name, label, exc)
            continue
        logger.info("Launched browser via %s for %s", strategy.name, label)
        return browser
    raise BrowserLaunchError(label, failures)


@contextmanager
def launched_browser(
    chromium: BrowserType,
    strategies: Sequence[LaunchStrategy],
    label: str,
    extra_args: Sequence[str] = (),
) -> Iterator[Browser]:
    browser = acquire_browser(chromium, strategies, label, extra_args)
    try:
        yield browser
    finally:
        try:
            browser.close()
        except Exception as exc:
            logger.warning("Failed to close browser for %s: %s", label, exc)
