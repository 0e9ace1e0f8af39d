from goalete import db
from datetime import datetime


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    phone = db.Column(db.String(30), nullable=False)
    source = db.Column(db.String(100), nullable=False)  # how the user found the club
    reference_name = db.Column(db.String(100))
    role = db.Column(db.String(20), default='user')  # user, superuser
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    subscriptions = db.relationship(
        'Subscription', backref='user', lazy='dynamic', cascade='all, delete-orphan'
    )

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'.strip()

    def latest_subscription(self):
        from .subscription import Subscription
        return self.subscriptions.order_by(Subscription.start_date.desc()).first()

    def __repr__(self):
        return f'<User {self.email}>'
