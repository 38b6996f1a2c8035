# symbol_registry/db/models.py

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class SymbolsSnapshot(Base):
    __tablename__ = "symbols_snapshots"

    # Snapshot key; one row per fetched exchange snapshot
    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    day = Column(Integer, nullable=False)
    exchange_id = Column(Integer, nullable=False)
    snapshot_time = Column(BigInteger, nullable=False)

    symbols = relationship(
        "SnapshotSymbol",
        back_populates="snapshot",
        order_by="SnapshotSymbol.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_symbols_snapshots_key", "year", "month", "day", "exchange_id", "snapshot_time"),
    )

    def __repr__(self):
        return (
            f"<SymbolsSnapshot(exchange_id={self.exchange_id}, "
            f"date={self.year:04d}-{self.month:02d}-{self.day:02d}, snapshot_time={self.snapshot_time})>"
        )


class SnapshotSymbol(Base):
    __tablename__ = "snapshot_symbols"

    id = Column(Integer, primary_key=True, autoincrement=True)
    snapshot_id = Column(Integer, ForeignKey("symbols_snapshots.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    symbol = Column(String, nullable=False)
    status = Column(String, nullable=False, default="")
    asset = Column(String, nullable=False, default="")
    asset_precision = Column(Integer, nullable=False, default=0)
    quote = Column(String, nullable=False, default="")
    quote_precision = Column(Integer, nullable=False, default=0)
    order_types = Column(JSON, nullable=False, default=list)
    iceberg_allowed = Column(Boolean, nullable=False, default=False)

    snapshot = relationship("SymbolsSnapshot", back_populates="symbols")

    def __repr__(self):
        return f"<SnapshotSymbol(symbol='{self.symbol}', status='{self.status}')>"
