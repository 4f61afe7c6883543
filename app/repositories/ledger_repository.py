from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from sqlalchemy.orm import Session, Query, joinedload, selectinload

from app.analytics.engine import EntryRecord, ItemRecord
from app.models.ledger_entry import EntryKind, LedgerEntry, LineItem


_RECORD_COLUMNS = (
    LedgerEntry.tenant_id,
    LedgerEntry.kind,
    LedgerEntry.total_amount,
    LedgerEntry.created_at,
    LedgerEntry.transaction_at,
)


def _to_record(row) -> EntryRecord:
    return EntryRecord(
        tenant_id=row.tenant_id,
        kind=row.kind,
        amount=row.total_amount,
        created_at=row.created_at,
        transaction_at=row.transaction_at,
    )


class RecordScope(str, PyEnum):
    """Which rows a ledger query sees with respect to archiving."""

    ACTIVE_ONLY = "active_only"
    INCLUDE_ARCHIVED = "include_archived"
    ARCHIVED_ONLY = "archived_only"


class EntrySort(str, PyEnum):
    CREATED_AT = "created_at"
    TOTAL_AMOUNT = "total_amount"


class LedgerRepository:
    """
    Repository for LedgerEntry data access.

    Every read takes an explicit RecordScope; there is no default, so a new
    query cannot silently include archived rows. tenant_id=None means no
    tenant filter (global view) and must only be passed once the access
    policy has resolved the effective scope.
    """

    def __init__(self, db: Session):
        self.db = db

    def _query(self, scope: RecordScope, tenant_id: Optional[int]) -> Query:
        return self._apply_scope(self.db.query(LedgerEntry), scope, tenant_id)

    def create_no_commit(self, entry: LedgerEntry) -> LedgerEntry:
        """Add entry (and its items) without committing; caller commits"""
        self.db.add(entry)
        self.db.flush()
        return entry

    def get_by_id(
        self, entry_id: int, scope: RecordScope, tenant_id: Optional[int] = None
    ) -> Optional[LedgerEntry]:
        """
        Get entry by ID within scope.

        Args:
            entry_id: Entry ID
            scope: Archive visibility
            tenant_id: Restrict to this tenant, None for any tenant

        Returns:
            LedgerEntry or None if not found or outside the tenant
        """
        return (
            self._query(scope, tenant_id)
            .options(
                joinedload(LedgerEntry.author),
                joinedload(LedgerEntry.tenant),
                selectinload(LedgerEntry.items),
                selectinload(LedgerEntry.attachments),
            )
            .filter(LedgerEntry.id == entry_id)
            .first()
        )

    def get_with_filters(
        self,
        scope: RecordScope,
        tenant_id: Optional[int],
        search: Optional[str] = None,
        kind: Optional[EntryKind] = None,
        created_from: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
        sort_by: EntrySort = EntrySort.CREATED_AT,
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[LedgerEntry], int]:
        """
        Filtered, paginated entry listing.

        Args:
            scope: Archive visibility
            tenant_id: Effective tenant filter (None = all tenants)
            search: Case-insensitive substring of the description
            kind: INCOME or EXPENSE
            created_from: created_at >= this
            created_before: created_at < this
            sort_by: Sort column
            descending: Sort direction
            limit: Page size
            offset: Pagination offset

        Returns:
            Tuple of (entries, total count before pagination)
        """
        query = self._query(scope, tenant_id)

        if search:
            query = query.filter(LedgerEntry.description.ilike(f"%{search}%"))
        if kind is not None:
            query = query.filter(LedgerEntry.kind == kind)
        if created_from is not None:
            query = query.filter(LedgerEntry.created_at >= created_from)
        if created_before is not None:
            query = query.filter(LedgerEntry.created_at < created_before)

        total = query.count()

        column = (
            LedgerEntry.total_amount if sort_by is EntrySort.TOTAL_AMOUNT else LedgerEntry.created_at
        )
        order = column.desc() if descending else column.asc()
        entries = (
            query.options(
                joinedload(LedgerEntry.author),
                joinedload(LedgerEntry.tenant),
                selectinload(LedgerEntry.attachments),
            )
            .order_by(order, LedgerEntry.id.desc() if descending else LedgerEntry.id.asc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return entries, total

    def count(self, scope: RecordScope, tenant_id: Optional[int]) -> int:
        return self._query(scope, tenant_id).count()

    def count_by_author(self, user_id: int) -> int:
        """Entries authored by a user, archived ones included"""
        return (
            self._query(RecordScope.INCLUDE_ARCHIVED, None)
            .filter(LedgerEntry.user_id == user_id)
            .count()
        )

    def entry_records(
        self,
        scope: RecordScope,
        tenant_id: Optional[int],
        occurred_from: Optional[datetime] = None,
        occurred_to: Optional[datetime] = None,
    ) -> list[EntryRecord]:
        """
        Plain records for the aggregation engine, windowed on transaction_at
        (both bounds inclusive).
        """
        query = self.db.query(*_RECORD_COLUMNS)
        query = self._apply_scope(query, scope, tenant_id)
        if occurred_from is not None:
            query = query.filter(LedgerEntry.transaction_at >= occurred_from)
        if occurred_to is not None:
            query = query.filter(LedgerEntry.transaction_at <= occurred_to)
        return [_to_record(row) for row in query.all()]

    def records_created_since(
        self, scope: RecordScope, tenant_id: Optional[int], since: datetime
    ) -> list[EntryRecord]:
        query = self.db.query(*_RECORD_COLUMNS)
        query = self._apply_scope(query, scope, tenant_id).filter(LedgerEntry.created_at >= since)
        return [_to_record(row) for row in query.all()]

    def item_records(
        self, scope: RecordScope, tenant_id: Optional[int], kind: EntryKind
    ) -> list[ItemRecord]:
        """Line items of entries of the given kind, in insertion order"""
        query = self.db.query(
            LineItem.name, LineItem.quantity, LineItem.unit_price, LineItem.subtotal
        ).join(LedgerEntry, LineItem.entry_id == LedgerEntry.id)
        query = self._apply_scope(query, scope, tenant_id).filter(LedgerEntry.kind == kind)
        return [
            ItemRecord(
                name=row.name,
                quantity=row.quantity,
                unit_price=row.unit_price,
                subtotal=row.subtotal,
            )
            for row in query.order_by(LineItem.id).all()
        ]

    def for_export(
        self,
        scope: RecordScope,
        tenant_id: Optional[int],
        occurred_from: Optional[datetime] = None,
        occurred_before: Optional[datetime] = None,
    ) -> list[LedgerEntry]:
        """Entries with author and tenant loaded, newest transaction first"""
        query = self._query(scope, tenant_id).options(
            joinedload(LedgerEntry.author), joinedload(LedgerEntry.tenant)
        )
        if occurred_from is not None:
            query = query.filter(LedgerEntry.transaction_at >= occurred_from)
        if occurred_before is not None:
            query = query.filter(LedgerEntry.transaction_at < occurred_before)
        return query.order_by(LedgerEntry.transaction_at.desc(), LedgerEntry.id.desc()).all()

    def creation_times_since(
        self, scope: RecordScope, since: datetime
    ) -> list[tuple[int, datetime]]:
        """(tenant_id, created_at) for every entry created at or after since"""
        query = self.db.query(LedgerEntry.tenant_id, LedgerEntry.created_at)
        query = self._apply_scope(query, scope, None).filter(LedgerEntry.created_at >= since)
        return [(row.tenant_id, row.created_at) for row in query.all()]

    @staticmethod
    def _apply_scope(query: Query, scope: RecordScope, tenant_id: Optional[int]) -> Query:
        if scope is RecordScope.ACTIVE_ONLY:
            query = query.filter(LedgerEntry.deleted_at.is_(None))
        elif scope is RecordScope.ARCHIVED_ONLY:
            query = query.filter(LedgerEntry.deleted_at.is_not(None))
        if tenant_id is not None:
            query = query.filter(LedgerEntry.tenant_id == tenant_id)
        return query

    def update(self, entry: LedgerEntry) -> LedgerEntry:
        """Commit pending changes to an entry"""
        self.db.commit()
        self.db.refresh(entry)
        return entry
