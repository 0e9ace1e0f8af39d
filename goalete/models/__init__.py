# Import all models
from .user import User
from .subscription import Subscription
from .meeting import Meeting, meeting_users

__all__ = ['User', 'Subscription', 'Meeting', 'meeting_users']
