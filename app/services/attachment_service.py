import logging
from sqlalchemy.orm import Session

from app.config import settings
from app.core.clock import Clock
from app.core.exceptions import NotFoundException, ValidationException
from app.models.attachment import Attachment
from app.models.identity import Identity
from app.repositories.attachment_repository import AttachmentRepository
from app.repositories.ledger_repository import RecordScope
from app.schemas.ledger_schemas import AttachmentResponse
from app.services.ledger_service import LedgerService
from app.storage.blob_store import BlobStore, generate_blob_key

logger = logging.getLogger(__name__)

ATTACHMENT_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "application/pdf"})
LOGO_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})


def validate_upload(content_type: str | None, size: int, allowed: frozenset[str], max_bytes: int) -> None:
    """
    Raises:
        ValidationException: If the file type is not allowed or the file is empty or too large
    """
    if content_type not in allowed:
        raise ValidationException(
            f"Validation error: unsupported file type {content_type!r}; "
            f"allowed: {', '.join(sorted(allowed))}"
        )
    if size == 0:
        raise ValidationException("Validation error: file is empty")
    if size > max_bytes:
        raise ValidationException(
            f"Validation error: file exceeds the {max_bytes // (1024 * 1024)}MB limit"
        )


class AttachmentService:
    """
    Receipt files attached to ledger entries.

    Blob and metadata live in different stores, so the writes are ordered:
    upload writes the blob first and the row second, delete removes the blob
    first and the row second. A row therefore never points at a missing blob;
    the worst case is an orphaned blob, which is logged.
    """

    def __init__(self, db: Session, clock: Clock, blob_store: BlobStore):
        self.db = db
        self.clock = clock
        self.blob_store = blob_store
        self.attachment_repo = AttachmentRepository(db)
        self.ledger_service = LedgerService(db, clock, blob_store)

    def upload(
        self,
        identity: Identity,
        entry_id: int,
        filename: str,
        content_type: str | None,
        data: bytes,
    ) -> AttachmentResponse:
        entry = self.ledger_service.visible_entry(identity, entry_id, RecordScope.ACTIVE_ONLY)
        validate_upload(content_type, len(data), ATTACHMENT_MIME_TYPES, settings.MAX_ATTACHMENT_BYTES)

        key = generate_blob_key(entry.tenant.slug, filename, self.clock.now())
        self.blob_store.put(key, data, content_type)

        try:
            attachment = self.attachment_repo.create(
                Attachment(
                    entry_id=entry.id,
                    blob_key=key,
                    filename=filename,
                    mime_type=content_type,
                    uploaded_at=self.clock.now(),
                )
            )
        except Exception:
            self.db.rollback()
            logger.warning("Orphaned blob %s: metadata write failed for entry %s", key, entry.id)
            raise

        logger.info("Attachment %s uploaded to entry %s by user %s", attachment.id, entry.id, identity.user_id)
        return AttachmentResponse(
            id=attachment.id,
            filename=attachment.filename,
            mime_type=attachment.mime_type,
            uploaded_at=attachment.uploaded_at,
            url=self.blob_store.presign(key),
        )

    def delete(self, identity: Identity, entry_id: int, attachment_id: int) -> None:
        """
        Raises:
            NotFoundException: If the entry is not visible or the attachment is not on it
        """
        entry = self.ledger_service.get_entry(identity, entry_id)
        attachment = self.attachment_repo.get_for_entry(attachment_id, entry.id)
        if not attachment:
            raise NotFoundException("Attachment")

        # A failing blob delete propagates and leaves the row untouched
        self.blob_store.delete(attachment.blob_key)
        self.attachment_repo.delete(attachment)
        logger.info("Attachment %s deleted from entry %s by user %s", attachment_id, entry.id, identity.user_id)
