from goalete import db
from datetime import datetime

# Reserved payment statuses for access granted by an administrator
ADMIN_PAYMENT_STATUSES = ('admin-added', 'admin-created')


class Subscription(db.Model):
    __tablename__ = 'subscriptions'
    __table_args__ = (
        db.CheckConstraint('end_date >= start_date', name='ck_subscriptions_date_order'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    plan_type = db.Column(db.String(30), nullable=False)  # daily, monthly, family-monthly, unlimited
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    payment_ref = db.Column(db.String(100))
    status = db.Column(db.String(20), default='inactive')  # active, inactive, expired, cancelled
    payment_status = db.Column(db.String(30), default='pending')
    order_id = db.Column(db.String(100), index=True)  # shared by both seats of a family plan
    duration = db.Column(db.Integer)  # days
    price = db.Column(db.Integer, default=0)  # INR
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_admin_granted(self):
        return self.payment_status in ADMIN_PAYMENT_STATUSES

    def covers(self, day):
        """True when ``day`` falls inside [start_date, end_date)."""
        return self.start_date.date() <= day < self.end_date.date()

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'planType': self.plan_type,
            'startDate': self.start_date.isoformat(),
            'endDate': self.end_date.isoformat(),
            'status': self.status,
            'paymentStatus': self.payment_status,
            'paymentRef': self.payment_ref,
            'orderId': self.order_id,
            'duration': self.duration,
            'price': self.price,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Subscription {self.plan_type} - {self.status}/{self.payment_status}>'
