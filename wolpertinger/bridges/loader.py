"""Load the most recent harvest of bridges from the relational store."""

from collections import defaultdict
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wolpertinger.bridges.addresses import parse_port, resolve_address
from wolpertinger.bridges.exceptions import AddressParseError, RowDecodeError, SourceUnavailableError
from wolpertinger.bridges.models import Bridge, DistributionGroup, Location, Registry
from wolpertinger.core.logging import get_logger
from wolpertinger.models.bridge import BlockedBridgeRecord, BridgeRecord

logger = get_logger(__name__)

LAST_SEEN_LAYOUT = "%Y-%m-%d %H:%M"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a first/last-seen column; ``None`` stays ``None``."""
    if value is None:
        return None
    try:
        return datetime.strptime(value, LAST_SEEN_LAYOUT)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise RowDecodeError(f"invalid timestamp {value!r}") from e


def decode_bridge_row(row: BridgeRecord, blocked_in: list[Location] | None = None) -> Bridge:
    """
    Turn one ``Bridges`` row into a Bridge.

    Raises:
        RowDecodeError: If any field violates its type constraints
    """
    if not row.hex_key:
        raise RowDecodeError(f"row {row.id}: missing fingerprint")
    try:
        address = resolve_address(row.address or "")
        port = parse_port(row.or_port)
    except AddressParseError as e:
        raise RowDecodeError(f"row {row.id} ({row.hex_key}): {e}") from e
    try:
        group = DistributionGroup(row.distributor)
    except ValueError as e:
        raise RowDecodeError(f"row {row.id} ({row.hex_key}): unknown distributor {row.distributor!r}") from e

    return Bridge(
        fingerprint=row.hex_key,
        address=address,
        port=port,
        distribution_group=group,
        first_seen=parse_timestamp(row.first_seen),
        last_seen=parse_timestamp(row.last_seen),
        blocked_in=list(blocked_in or []),
    )


def _load_blocked_locations(db: Session) -> dict[str, list[Location]]:
    locations: dict[str, list[Location]] = defaultdict(list)
    for record in db.query(BlockedBridgeRecord).order_by(BlockedBridgeRecord.id):
        if not record.blocking_country and not record.blocking_asn:
            continue
        locations[record.hex_key].append(
            Location(country_code=record.blocking_country, asn=record.blocking_asn)
        )
    return locations


def load_bridges_from_db(db: Session) -> Registry:
    """
    Load the bridges that are currently online.

    "Online" means the row belongs to the newest harvest round (its
    ``last_seen`` equals the table's maximum) and has an OR port.

    Args:
        db: Database session, owned by the caller

    Returns:
        Registry with one bridge per row, without transports

    Raises:
        SourceUnavailableError: If the store cannot be queried
        RowDecodeError: If any selected row cannot be decoded
    """
    try:
        latest = db.query(func.max(BridgeRecord.last_seen)).scalar()
        if latest is None:
            logger.warning("No bridges in relational store")
            return Registry()

        rows = (
            db.query(BridgeRecord)
            .filter(BridgeRecord.last_seen == latest, BridgeRecord.or_port.isnot(None))
            .order_by(BridgeRecord.id)
            .all()
        )
        blocked = _load_blocked_locations(db)
    except SQLAlchemyError as e:
        raise SourceUnavailableError(f"failed to query relational store: {e}") from e

    bridges: dict[str, Bridge] = {}
    for row in rows:
        bridge = decode_bridge_row(row, blocked.get(row.hex_key))
        if bridge.fingerprint in bridges:
            logger.warning(
                "Duplicate fingerprint in harvest",
                extra={"fingerprint": bridge.fingerprint, "last_seen": latest},
            )
        bridges[bridge.fingerprint] = bridge

    logger.info("Loaded bridges from relational store", extra={"bridges": len(bridges), "last_seen": latest})
    return Registry(bridges.values())
