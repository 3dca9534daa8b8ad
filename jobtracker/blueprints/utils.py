from typing import Optional

from flask import flash


def notify(title: str, description: Optional[str] = None, category: str = "success") -> None:
    """Flash a toast: a short title plus optional detail line."""
    flash({"title": title, "description": description}, category)


def notify_error(title: str, description: Optional[str] = None) -> None:
    notify(title, description, "danger")
