"""Activity Domain: audit feed of user and system actions"""

from sqlalchemy import Column, String, Text, Uuid

from app.models.base import AgencyScopedMixin, BaseModel, JSONType


class ActivityLog(BaseModel, AgencyScopedMixin):
    """
    Activity feed entry. user_id is NULL for actions taken by scheduled jobs.
    """
    __tablename__ = "activity_log"

    user_id = Column(Uuid(as_uuid=True), nullable=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    metadata_ = Column("metadata", JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<ActivityLog {self.entity_type}:{self.action}>"
