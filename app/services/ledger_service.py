import logging
from datetime import date, datetime, time, timedelta, UTC
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from sqlalchemy.orm import Session

from app.core import access_policy
from app.core.access_policy import Action
from app.core.clock import Clock
from app.core.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from app.models.identity import Identity
from app.models.ledger_entry import EntryKind, LedgerEntry, LineItem
from app.repositories.ledger_repository import EntrySort, LedgerRepository, RecordScope
from app.repositories.tenant_repository import TenantRepository
from app.schemas.ledger_schemas import (
    AttachmentResponse,
    EntryCreate,
    EntryDetailResponse,
    EntryResponse,
    EntryUpdate,
    LineItemCreate,
    LineItemResponse,
)
from app.storage.blob_store import BlobStore
from app.utils.pagination import PageRequest

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC).replace(tzinfo=None)
    return moment


def day_range(start_date: Optional[date], end_date: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    """[start of start_date, start of the day after end_date); end_date counts in full"""
    start = datetime.combine(start_date, time.min) if start_date else None
    end = datetime.combine(end_date + timedelta(days=1), time.min) if end_date else None
    return start, end


def build_line_items(items: list[LineItemCreate]) -> list[LineItem]:
    return [
        LineItem(
            name=item.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            subtotal=(item.quantity * item.unit_price).quantize(CENT, rounding=ROUND_HALF_UP),
        )
        for item in items
    ]


def resolve_total(total_amount: Optional[Decimal], items: list[LineItem]) -> Decimal:
    """
    Entry total given an optional declared total and the entry's items.

    Raises:
        ValidationException: If the declared total disagrees with the items,
            or there is neither a total nor any item
    """
    if not items:
        if total_amount is None:
            raise ValidationException("Validation error: total_amount is required when no items are given")
        return total_amount

    items_total = sum((item.subtotal for item in items), Decimal("0"))
    if total_amount is None:
        return items_total
    if total_amount.quantize(CENT) != items_total.quantize(CENT):
        raise ValidationException(
            f"Validation error: total_amount {total_amount:.2f} does not match "
            f"the sum of item subtotals {items_total:.2f}"
        )
    return total_amount


class LedgerService:
    """Service layer for ledger entry business logic"""

    def __init__(self, db: Session, clock: Clock, blob_store: BlobStore):
        self.db = db
        self.clock = clock
        self.blob_store = blob_store
        self.ledger_repo = LedgerRepository(db)
        self.tenant_repo = TenantRepository(db)

    def visible_entry(self, identity: Identity, entry_id: int, scope: RecordScope) -> LedgerEntry:
        """
        Entry the identity may see, restricted to its tenant unless global admin.

        A foreign entry and a missing entry both raise the same NotFoundException.
        """
        tenant_filter = None if access_policy.is_global_admin(identity) else identity.tenant_id
        entry = self.ledger_repo.get_by_id(entry_id, scope, tenant_filter)
        if not entry:
            raise NotFoundException("Ledger entry")
        return entry

    def _check_mutable(self, identity: Identity, entry: LedgerEntry, verb: str) -> None:
        if entry.is_archived:
            raise InvalidStateException("Ledger entry is already archived")
        if access_policy.can_mutate_entry(identity, entry, self.clock.now()):
            return
        if entry.user_id != identity.user_id:
            raise ForbiddenException(f"Forbidden: You can only {verb} your own entries")
        raise InvalidStateException(
            f"Cannot {verb} entries older than {access_policy.STAFF_EDIT_WINDOW_HOURS} hours"
        )

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def list_entries(
        self,
        identity: Identity,
        page: PageRequest,
        tenant_id: Optional[int] = None,
        search: Optional[str] = None,
        kind: Optional[EntryKind] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        sort_by: EntrySort = EntrySort.CREATED_AT,
        descending: bool = True,
        archived: bool = False,
    ) -> tuple[list[LedgerEntry], int]:
        """
        List entries visible to the identity.

        archived=True lists archived entries for SUPER_ADMIN and is ignored
        for everyone else.
        """
        scope = (
            RecordScope.ARCHIVED_ONLY
            if archived and access_policy.can_view_archived(identity)
            else RecordScope.ACTIVE_ONLY
        )
        created_from, created_before = day_range(start_date, end_date)
        return self.ledger_repo.get_with_filters(
            scope=scope,
            tenant_id=access_policy.effective_tenant_filter(identity, tenant_id),
            search=search,
            kind=kind,
            created_from=created_from,
            created_before=created_before,
            sort_by=sort_by,
            descending=descending,
            limit=page.limit,
            offset=page.offset,
        )

    def get_entry(self, identity: Identity, entry_id: int) -> LedgerEntry:
        return self.visible_entry(identity, entry_id, self._scope_for(identity))

    def _scope_for(self, identity: Identity) -> RecordScope:
        """Archived rows exist only for identities allowed to see them"""
        if access_policy.can_view_archived(identity):
            return RecordScope.INCLUDE_ARCHIVED
        return RecordScope.ACTIVE_ONLY

    def create_entry(self, identity: Identity, data: EntryCreate) -> LedgerEntry:
        """
        Create an entry and its items in one transaction.

        Raises:
            NotFoundException: If a SUPER_ADMIN targets a tenant that does not exist
            ValidationException: If total and items disagree
        """
        access_policy.require(identity, Action.CREATE_ENTRY)
        target_tenant_id = access_policy.resolve_target_tenant(identity, data.tenant_id)
        if target_tenant_id != identity.tenant_id and not self.tenant_repo.get_by_id(target_tenant_id):
            raise NotFoundException("Tenant")

        items = build_line_items(data.items)
        total = resolve_total(data.total_amount, items)
        now = self.clock.now()

        entry = LedgerEntry(
            tenant_id=target_tenant_id,
            user_id=identity.user_id,
            kind=data.kind,
            description=data.description,
            total_amount=total,
            transaction_at=to_naive_utc(data.transaction_at) if data.transaction_at else now,
            created_at=now,
            items=items,
        )
        try:
            self.ledger_repo.create_no_commit(entry)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(entry)

        logger.info(
            "Ledger entry %s created: %s %s in tenant %s by user %s",
            entry.id, entry.kind.value, entry.total_amount, entry.tenant_id, identity.user_id,
        )
        return entry

    def update_entry(self, identity: Identity, entry_id: int, data: EntryUpdate) -> LedgerEntry:
        """
        Update an entry; provided items replace the current ones atomically.

        Raises:
            NotFoundException: If the entry is not visible to the identity
            ForbiddenException: If STAFF edits someone else's entry
            InvalidStateException: If the entry is archived or past the STAFF edit window
            ValidationException: If total and items disagree
        """
        entry = self.visible_entry(identity, entry_id, self._scope_for(identity))
        self._check_mutable(identity, entry, "edit")

        if data.items is not None:
            items = build_line_items(data.items)
            entry.total_amount = resolve_total(data.total_amount, items)
            entry.items = items
        elif data.total_amount is not None:
            entry.total_amount = resolve_total(data.total_amount, list(entry.items))

        if data.kind is not None:
            entry.kind = data.kind
        if data.description is not None:
            entry.description = data.description
        if data.transaction_at is not None:
            entry.transaction_at = to_naive_utc(data.transaction_at)

        self._commit()
        self.db.refresh(entry)
        logger.info("Ledger entry %s updated by user %s", entry.id, identity.user_id)
        return entry

    def archive_entry(self, identity: Identity, entry_id: int) -> None:
        """Soft delete; the entry drops out of every aggregation"""
        entry = self.visible_entry(identity, entry_id, self._scope_for(identity))
        self._check_mutable(identity, entry, "archive")

        entry.deleted_at = self.clock.now()
        self._commit()
        logger.info("Ledger entry %s archived by user %s", entry.id, identity.user_id)

    def restore_entry(self, identity: Identity, entry_id: int) -> LedgerEntry:
        """
        Bring an archived entry back (SUPER_ADMIN only).

        Raises:
            ForbiddenException: If the identity is not SUPER_ADMIN
            InvalidStateException: If the entry is not archived
        """
        access_policy.require(identity, Action.RESTORE_ENTRY)
        entry = self.visible_entry(identity, entry_id, RecordScope.INCLUDE_ARCHIVED)
        if not entry.is_archived:
            raise InvalidStateException("Ledger entry is not archived")

        entry.deleted_at = None
        self._commit()
        self.db.refresh(entry)
        logger.info("Ledger entry %s restored by user %s", entry.id, identity.user_id)
        return entry

    def to_response(self, entry: LedgerEntry) -> EntryResponse:
        """List shape; the first attachment, if any, is presigned as a preview"""
        response = EntryResponse.model_validate(entry)
        if entry.attachments:
            response.attachment_url = self.blob_store.presign(entry.attachments[0].blob_key)
        return response

    def to_detail(self, entry: LedgerEntry) -> EntryDetailResponse:
        attachments = [
            AttachmentResponse(
                id=attachment.id,
                filename=attachment.filename,
                mime_type=attachment.mime_type,
                uploaded_at=attachment.uploaded_at,
                url=self.blob_store.presign(attachment.blob_key),
            )
            for attachment in entry.attachments
        ]
        base = self.to_response(entry)
        return EntryDetailResponse(
            **base.model_dump(exclude={"author", "tenant"}),
            author=base.author,
            tenant=base.tenant,
            items=[LineItemResponse.model_validate(item) for item in entry.items],
            attachments=attachments,
        )
