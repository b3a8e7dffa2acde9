"""
notification_service.py — In-app notifications
Persistent notices for users, currently raised when an admin decides on one
of their expenses.
"""

from sqlalchemy.orm import Session

from errors import NotFoundError
from models.notification import Notification


class NotificationService:
    @staticmethod
    def add(db: Session, user_id: int, type: str, title: str, message: str) -> Notification:
        """Stage a notification on the session; the caller commits."""
        n = Notification(user_id=user_id, type=type, title=title, message=message)
        db.add(n)
        return n

    @staticmethod
    def get_all(db: Session, user_id: int, unread_only: bool = False) -> list[Notification]:
        query = db.query(Notification).filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    @staticmethod
    def mark_read(db: Session, user_id: int, notification_id: int) -> Notification:
        n = db.query(Notification).filter_by(id=notification_id, user_id=user_id).first()
        if not n:
            raise NotFoundError("Notification not found")
        n.is_read = True
        db.commit()
        db.refresh(n)
        return n
