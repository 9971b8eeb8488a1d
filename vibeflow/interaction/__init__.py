"""Human-in-the-loop suspension for workflow runs."""

from .port import SuspendingInteractionPort
from .registry import PendingInteraction, PendingInteractionRegistry

__all__ = [
    "PendingInteraction",
    "PendingInteractionRegistry",
    "SuspendingInteractionPort",
]
