"""
Record bridges that OONI's tor test found blocked.

Only the subset of OONI's measurement format that matters here is
modelled. See https://github.com/ooni/spec/blob/master/nettests/ts-023-tor.md
for the full test-keys layout. Targets are keyed by the external
identifiers this service hands out, so they are resolved against the
current registry before anything is written.
"""

from collections.abc import Iterator
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wolpertinger.bridges.exceptions import SourceUnavailableError, WolpertingerError
from wolpertinger.bridges.models import Location, Registry
from wolpertinger.core.logging import get_logger
from wolpertinger.models.bridge import BlockedBridgeRecord

logger = get_logger(__name__)

TOR_TEST_NAME = "tor"
UNKNOWN_ASN = "AS0"
UNKNOWN_COUNTRY = "ZZ"


class MeasurementError(WolpertingerError):
    """A measurement cannot be used to record blocked bridges."""

    pass


class TorTarget(BaseModel):
    """One directory authority or bridge probed by the tor test."""

    failure: str | None = None
    summary: dict[str, dict[str, str | None]] = Field(default_factory=dict)
    target_address: str = ""  # 1.1.1.1:555, [::1]:555 or domain:555
    target_name: str = ""
    target_protocol: str = ""


class TorMeasurement(BaseModel):
    """Test keys of a tor test measurement."""

    dir_port_total: int = 0
    dir_port_accessible: int = 0
    obfs4_total: int = 0
    obfs4_accessible: int = 0
    or_port_dirauth_total: int = 0
    or_port_dirauth_accessible: int = 0
    or_port_total: int = 0
    or_port_accessible: int = 0
    targets: dict[str, TorTarget] = Field(default_factory=dict)


class OoniMeasurement(BaseModel):
    """An OONI measurement envelope."""

    probe_asn: str | None = None
    probe_cc: str | None = None
    test_name: str
    test_keys: TorMeasurement = Field(default_factory=TorMeasurement)


def load_measurement(path: str | Path) -> OoniMeasurement:
    """
    Read one measurement from a JSON file.

    Raises:
        SourceUnavailableError: If the file cannot be read
        MeasurementError: If the content is not a measurement
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise SourceUnavailableError(f"cannot read measurement {str(path)!r}: {e}") from e
    try:
        return OoniMeasurement.model_validate_json(content)
    except ValidationError as e:
        raise MeasurementError(f"invalid measurement {str(path)!r}: {e}") from e


def probe_location(measurement: OoniMeasurement) -> Location:
    """Where the probe ran; OONI's placeholders count as unknown."""
    country = measurement.probe_cc if measurement.probe_cc not in (None, "", UNKNOWN_COUNTRY) else None
    asn = measurement.probe_asn if measurement.probe_asn not in (None, "", UNKNOWN_ASN) else None
    if country is None and asn is None:
        raise MeasurementError("measurement has neither a probe country nor an AS number")
    return Location(country_code=country, asn=asn)


def blocked_targets(measurement: OoniMeasurement) -> Iterator[tuple[str, Location]]:
    """
    Yield ``(target_id, location)`` for every target the probe failed to reach.

    Raises:
        MeasurementError: If the measurement is not a tor test
    """
    if measurement.test_name != TOR_TEST_NAME:
        raise MeasurementError(
            f"expected test_name to be {TOR_TEST_NAME!r} but got {measurement.test_name!r}"
        )
    location = None
    for target_id, target in measurement.test_keys.targets.items():
        if not target.failure:
            continue
        if location is None:
            location = probe_location(measurement)
        yield target_id, location


def external_id_index(registry: Registry, master_key: bytes | str) -> dict[str, str]:
    """Map every external identifier in ``registry`` to its bridge's fingerprint."""
    index: dict[str, str] = {}
    for fingerprint, bridge in registry.items():
        index[bridge.external_id(master_key)] = fingerprint
        for transport in bridge.transports:
            index[transport.external_id(master_key)] = fingerprint
    return index


def record_measurement(
    db: Session,
    measurement: OoniMeasurement,
    registry: Registry,
    master_key: bytes | str,
) -> int:
    """
    Write one ``BlockedBridges`` row per blocked, known bridge.

    Args:
        db: Database session; committed on success, rolled back on failure
        measurement: A tor test measurement
        registry: Registry used to resolve target identifiers
        master_key: Key the identifiers were derived with

    Returns:
        Number of rows written
    """
    index = external_id_index(registry, master_key)
    written = 0
    seen: set[tuple[str, Location]] = set()

    for target_id, location in blocked_targets(measurement):
        fingerprint = index.get(target_id)
        if fingerprint is None:
            logger.warning("Could not find bridge ID in registry", extra={"target_id": target_id})
            continue
        if (fingerprint, location) in seen:
            continue
        seen.add((fingerprint, location))
        db.add(
            BlockedBridgeRecord(
                hex_key=fingerprint,
                blocking_country=location.country_code,
                blocking_asn=location.asn,
            )
        )
        written += 1

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise SourceUnavailableError(f"failed to record blocked bridges: {e}") from e

    logger.info(
        "Recorded OONI measurement",
        extra={"blocked": written, "probe_cc": measurement.probe_cc, "probe_asn": measurement.probe_asn},
    )
    return written
