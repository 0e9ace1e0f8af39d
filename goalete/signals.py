# goalete/signals.py
"""
Mutation events.

Handlers that change data send one of the signals below after a successful
commit; the dashboard polls ``/admin/events`` to learn which views are stale.
"""
from collections import deque
from datetime import datetime

from blinker import Namespace
from flask import current_app

_signals = Namespace()

subscription_changed = _signals.signal('subscription-changed')
user_changed = _signals.signal('user-changed')
meeting_changed = _signals.signal('meeting-changed')

TOPICS = {
    'subscriptions': subscription_changed,
    'users': user_changed,
    'meetings': meeting_changed,
}


class EventLog:
    """Keeps the latest events per topic, newest first."""

    def __init__(self, maxlen=50):
        self.events = {topic: deque(maxlen=maxlen) for topic in TOPICS}

    def record(self, topic, object_id, action=None):
        self.events[topic].appendleft({
            'topic': topic,
            'action': action,
            'id': object_id,
            'at': datetime.utcnow().isoformat(),
        })

    def latest(self):
        return {topic: (events[0] if events else None) for topic, events in self.events.items()}

    def recent(self, topic):
        return list(self.events.get(topic, ()))


def _recorder(topic):
    def record(sender, action=None, object_id=None, **extra):
        event_log = current_app.extensions.get('event_log')
        if event_log is not None:
            if object_id is None:
                object_id = getattr(sender, 'id', None)
            event_log.record(topic, object_id, action)
    return record


for _topic, _signal in TOPICS.items():
    _signal.connect(_recorder(_topic), weak=False)
