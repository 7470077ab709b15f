from typing import Literal

from pydantic import BaseModel


class Notification(BaseModel):
    """A transient user-facing message, rendered by the client as a toast."""

    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"
