"""Terminal presentation layer."""

from .console_presenter import ConsolePresenter, condition_label, format_temperature

__all__ = ["ConsolePresenter", "condition_label", "format_temperature"]
