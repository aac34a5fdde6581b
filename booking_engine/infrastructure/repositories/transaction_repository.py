# booking_engine/infrastructure/repositories/transaction_repository.py

from sqlalchemy.orm import Session
from sqlalchemy import select

from booking_engine.infrastructure.db.models import Transaction


class TransactionRepository:
    """Append-only: transactions are inserted, never updated or deleted."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, transaction_id: str) -> Transaction | None:
        stmt = select(Transaction).where(Transaction.id == transaction_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_booking_id(self, booking_id: str) -> Transaction | None:
        stmt = select(Transaction).where(Transaction.booking_id == booking_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_by_buyer(self, buyer_id: str) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .where(Transaction.buyer_id == buyer_id)
            .order_by(Transaction.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_all(self) -> list[Transaction]:
        stmt = select(Transaction).order_by(Transaction.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def append(self, transaction: Transaction) -> Transaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction
