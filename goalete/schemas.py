# goalete/schemas.py
"""Request bodies accepted by the JSON API."""
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from goalete.models.meeting import PLATFORMS

EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
HHMM_PATTERN = r'^([01]\d|2[0-3]):[0-5]\d$'


class Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class AuthRequest(Schema):
    passcode: str = Field(min_length=1)


class UserRequest(Schema):
    first_name: str = Field(alias='firstName', min_length=1, max_length=100)
    last_name: str = Field(alias='lastName', min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN)
    phone: str = Field(min_length=5, max_length=30)
    source: str = Field(min_length=1, max_length=100)
    reference_name: Optional[str] = Field(default=None, alias='referenceName')

    @field_validator('email')
    @classmethod
    def lower_email(cls, value):
        return value.lower()


class UserUpdateRequest(Schema):
    first_name: Optional[str] = Field(default=None, alias='firstName', min_length=1)
    last_name: Optional[str] = Field(default=None, alias='lastName', min_length=1)
    phone: Optional[str] = Field(default=None, min_length=5)
    source: Optional[str] = None
    reference_name: Optional[str] = Field(default=None, alias='referenceName')
    grant_super_user: bool = Field(default=False, alias='grantSuperUser')
    create_infinite_subscription: bool = Field(default=False, alias='createInfiniteSubscription')


class CheckSubscriptionRequest(Schema):
    email: str = Field(pattern=EMAIL_PATTERN)
    plan_type: Optional[str] = Field(default=None, alias='planType')
    start_date: Optional[date] = Field(default=None, alias='startDate')
    end_date: Optional[date] = Field(default=None, alias='endDate')


class OrderRequest(Schema):
    user_id: int = Field(alias='userId')
    plan_type: Literal['daily', 'monthly', 'monthlyFamily'] = Field(alias='planType')
    start_date: Optional[date] = Field(default=None, alias='startDate')
    second_user_id: Optional[int] = Field(default=None, alias='secondUserId')

    @model_validator(mode='after')
    def family_needs_second_user(self):
        if self.plan_type == 'monthlyFamily' and not self.second_user_id:
            raise ValueError('secondUserId is required for the family plan')
        if self.second_user_id is not None and self.second_user_id == self.user_id:
            raise ValueError('secondUserId must be a different user')
        return self


class OrderConfirmation(Schema):
    order_id: str = Field(alias='orderId', min_length=1)
    payment_id: str = Field(alias='paymentId', min_length=1)
    status: str = Field(default='active')
    payment_status: str = Field(default='success', alias='paymentStatus')


class DateRange(Schema):
    start_date: date = Field(alias='startDate')
    end_date: date = Field(alias='endDate')

    @model_validator(mode='after')
    def ordered(self):
        if self.end_date < self.start_date:
            raise ValueError('endDate must not be before startDate')
        return self


class MeetingRequest(Schema):
    dates: List[date] = Field(default_factory=list)
    date_range: Optional[DateRange] = Field(default=None, alias='dateRange')
    platform: Optional[str] = None
    start_time: Optional[str] = Field(default=None, alias='startTime', pattern=HHMM_PATTERN)
    duration: Optional[int] = Field(default=None, ge=15, le=240)
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    add_active_users: bool = Field(default=True, alias='addActiveUsers')
    sync_with_calendar: bool = Field(default=True, alias='syncWithCalendar')

    @field_validator('platform')
    @classmethod
    def known_platform(cls, value):
        if value is not None and value not in PLATFORMS:
            raise ValueError(f'platform must be one of {", ".join(PLATFORMS)}')
        return value

    @model_validator(mode='after')
    def has_dates(self):
        if not self.dates and not self.date_range:
            raise ValueError('Provide dates or dateRange')
        return self


class AddUserToMeetingRequest(Schema):
    action: Literal['checkMeeting', 'addUserToMeeting']
    day: Optional[date] = Field(default=None, alias='date')
    user_id: Optional[int] = Field(default=None, alias='userId')
    meeting_id: Optional[int] = Field(default=None, alias='meetingId')
    send_invite: bool = Field(default=True, alias='sendInvite')

    @model_validator(mode='after')
    def action_fields(self):
        if self.action == 'checkMeeting' and self.day is None:
            raise ValueError('date is required for checkMeeting')
        if self.action == 'addUserToMeeting' and (self.user_id is None or self.meeting_id is None):
            raise ValueError('userId and meetingId are required for addUserToMeeting')
        return self


class CalendarSyncRequest(Schema):
    days: int = Field(default=30, ge=1, le=90)
