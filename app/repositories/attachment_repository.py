from sqlalchemy.orm import Session

from app.models.attachment import Attachment


class AttachmentRepository:
    """Repository for Attachment metadata rows"""

    def __init__(self, db: Session):
        self.db = db

    def get_for_entry(self, attachment_id: int, entry_id: int) -> Attachment | None:
        """Attachment by ID, only if it belongs to the given entry"""
        return (
            self.db.query(Attachment)
            .filter(Attachment.id == attachment_id, Attachment.entry_id == entry_id)
            .first()
        )

    def create(self, attachment: Attachment) -> Attachment:
        self.db.add(attachment)
        self.db.commit()
        self.db.refresh(attachment)
        return attachment

    def delete(self, attachment: Attachment) -> None:
        self.db.delete(attachment)
        self.db.commit()
