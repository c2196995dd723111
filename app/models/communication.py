"""Communication Domain: in-app notifications"""

from sqlalchemy import Boolean, Column, DateTime, Enum, String, Text, Uuid

from app.models.base import AgencyScopedMixin, BaseModel, JSONType
from app.models.enums import NotificationType, enum_values


class Notification(BaseModel, AgencyScopedMixin):
    """
    In-app notification. user_id NULL means agency-wide.

    Overdue notifications are unique per (type, metadata.installment_id); the
    notification generator enforces it, there is no schema constraint.
    """
    __tablename__ = "notifications"

    user_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    type = Column(
        Enum(NotificationType, name="notification_type", values_callable=enum_values),
        nullable=False,
        index=True,
    )
    message = Column(Text, nullable=False)
    link = Column(String(500), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    metadata_ = Column("metadata", JSONType, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<Notification {self.type} - {'Read' if self.is_read else 'Unread'}>"
