"""Relational bridge tables, as written by the bridge distribution database."""

from sqlalchemy import Column, Integer, String

from wolpertinger.db.base import Base


class BridgeRecord(Base):
    """One bridge as seen in one harvest round."""

    __tablename__ = "Bridges"

    id = Column(Integer, primary_key=True, nullable=False)
    hex_key = Column(String, nullable=True)  # Fingerprint
    address = Column(String, nullable=True)
    or_port = Column(String, nullable=True)  # Untyped column in the upstream schema
    distributor = Column(String, nullable=True)  # moat, https, email, unallocated
    first_seen = Column(String, nullable=True)  # "YYYY-MM-DD HH:MM"
    last_seen = Column(String, nullable=True, index=True)


class BlockedBridgeRecord(Base):
    """A bridge observed as blocked in a country or autonomous system."""

    __tablename__ = "BlockedBridges"

    id = Column(Integer, primary_key=True, nullable=False)
    hex_key = Column(String, nullable=False, index=True)
    blocking_country = Column(String, nullable=True)
    blocking_asn = Column(String, nullable=True)
