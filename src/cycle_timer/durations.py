"""Session kinds and sanitized per-session duration configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Optional

from .constants import (
    DEFAULT_FOCUS_MINUTES,
    DEFAULT_LONG_BREAK_MINUTES,
    DEFAULT_SHORT_BREAK_MINUTES,
    MIRROR_MAX_FOCUS_MINUTES,
    MIRROR_MAX_LONG_BREAK_MINUTES,
    MIRROR_MAX_SHORT_BREAK_MINUTES,
    SESSION_FOCUS,
    SESSION_LONG_BREAK,
    SESSION_SHORT_BREAK,
)

_MIN_MINUTES = 1


class SessionKind(Enum):
    FOCUS = SESSION_FOCUS
    SHORT_BREAK = SESSION_SHORT_BREAK
    LONG_BREAK = SESSION_LONG_BREAK

    @property
    def title(self) -> str:
        return _TITLES[self]

    @property
    def is_break(self) -> bool:
        return self is not SessionKind.FOCUS

    @classmethod
    def parse(cls, raw: Any) -> Optional["SessionKind"]:
        """Resolve a wire tag (``"shortBreak"``) or enum name (``"short_break"``)."""
        if isinstance(raw, SessionKind):
            return raw
        if not isinstance(raw, str):
            return None
        text = raw.strip()
        for kind in cls:
            if text == kind.value or text.lower() == kind.name.lower():
                return kind
        return None


_TITLES: dict[SessionKind, str] = {
    SessionKind.FOCUS: "Focus",
    SessionKind.SHORT_BREAK: "Short Break",
    SessionKind.LONG_BREAK: "Long Break",
}


@dataclass(frozen=True)
class DurationLimits:
    """Advisory upper bounds in minutes; the core only clamps when given limits."""
    focus_minutes: int
    short_break_minutes: int
    long_break_minutes: int


MIRROR_LIMITS = DurationLimits(
    focus_minutes=MIRROR_MAX_FOCUS_MINUTES,
    short_break_minutes=MIRROR_MAX_SHORT_BREAK_MINUTES,
    long_break_minutes=MIRROR_MAX_LONG_BREAK_MINUTES,
)


@dataclass(frozen=True)
class DurationConfig:
    """Per-session lengths in whole minutes."""
    focus_minutes: int = DEFAULT_FOCUS_MINUTES
    short_break_minutes: int = DEFAULT_SHORT_BREAK_MINUTES
    long_break_minutes: int = DEFAULT_LONG_BREAK_MINUTES

    DEFAULT: ClassVar["DurationConfig"]

    def sanitized(self, limits: Optional[DurationLimits] = None) -> "DurationConfig":
        return DurationConfig(
            focus_minutes=_clamp_minutes(
                self.focus_minutes,
                limits.focus_minutes if limits else None,
            ),
            short_break_minutes=_clamp_minutes(
                self.short_break_minutes,
                limits.short_break_minutes if limits else None,
            ),
            long_break_minutes=_clamp_minutes(
                self.long_break_minutes,
                limits.long_break_minutes if limits else None,
            ),
        )

    def minutes(self, kind: SessionKind) -> int:
        if kind is SessionKind.FOCUS:
            return self.focus_minutes
        if kind is SessionKind.SHORT_BREAK:
            return self.short_break_minutes
        return self.long_break_minutes

    def duration_seconds(self, kind: SessionKind) -> int:
        return _clamp_minutes(self.minutes(kind), None) * 60


DurationConfig.DEFAULT = DurationConfig()


def _clamp_minutes(value: Any, upper: Optional[int]) -> int:
    minutes = _coerce_minutes(value)
    minutes = max(_MIN_MINUTES, minutes)
    if upper is not None:
        minutes = min(minutes, max(_MIN_MINUTES, upper))
    return minutes


def _coerce_minutes(value: Any) -> int:
    # bool is an int subclass but never a meaningful duration.
    if isinstance(value, bool) or value is None:
        return _MIN_MINUTES
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return _MIN_MINUTES
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return _MIN_MINUTES
    return _MIN_MINUTES
