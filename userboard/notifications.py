"""Toast notifications raised once per completed mutation attempt."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Protocol

ToastVariant = Literal["default", "destructive"]

_FLASH_CATEGORIES: Dict[str, str] = {
    "default": "success",
    "destructive": "error",
}


@dataclass(frozen=True)
class Toast:
    """A user-visible notification."""

    title: str
    description: str
    variant: ToastVariant = "default"

    @property
    def flash_category(self) -> str:
        return _FLASH_CATEGORIES.get(self.variant, "info")

    def to_flash(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "message": self.description,
            "category": self.flash_category,
        }


class Notifier(Protocol):
    def __call__(self, toast: Toast) -> None:
        ...


class ToastLog:
    """Notifier that keeps every toast it receives, in order."""

    def __init__(self) -> None:
        self._toasts: List[Toast] = []

    def __call__(self, toast: Toast) -> None:
        self._toasts.append(toast)

    def __len__(self) -> int:
        return len(self._toasts)

    @property
    def toasts(self) -> List[Toast]:
        return list(self._toasts)

    @property
    def last(self) -> Toast | None:
        return self._toasts[-1] if self._toasts else None

    def drain(self) -> List[Toast]:
        drained, self._toasts = self._toasts, []
        return drained


__all__ = ["Notifier", "Toast", "ToastLog", "ToastVariant"]
