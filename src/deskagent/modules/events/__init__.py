from .broadcaster import Event, Subscription, EventBroadcaster

__all__ = [
    "Event",
    "Subscription",
    "EventBroadcaster",
]
