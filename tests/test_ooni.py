"""Tests for recording OONI tor test results."""

import json
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

from tests.helpers.factories import FP_A, FP_B, MASTER_KEY, make_bridge, make_registry, make_transport
from wolpertinger.bridges.exceptions import SourceUnavailableError
from wolpertinger.bridges.models import Location
from wolpertinger.models.bridge import BlockedBridgeRecord
from wolpertinger.ooni import (
    MeasurementError,
    OoniMeasurement,
    blocked_targets,
    external_id_index,
    load_measurement,
    probe_location,
    record_measurement,
)

TRANSPORT = make_transport(FP_B)
REGISTRY = make_registry(make_bridge(FP_A), make_bridge(FP_B, address="10.0.0.2", transports=[TRANSPORT]))
VANILLA_ID = REGISTRY[FP_A].external_id(MASTER_KEY)
TRANSPORT_ID = TRANSPORT.external_id(MASTER_KEY)


def _measurement(targets: dict, probe_cc="RU", probe_asn="AS12389", test_name="tor") -> OoniMeasurement:
    return OoniMeasurement.model_validate(
        {
            "probe_cc": probe_cc,
            "probe_asn": probe_asn,
            "test_name": test_name,
            "test_keys": {"targets": targets},
        }
    )


def _target(failure: str | None) -> dict:
    return {"failure": failure, "target_address": "1.2.3.4:1234", "target_protocol": "obfs4"}


class TestBlockedTargets:
    """Extracting failed targets."""

    def test_yields_only_failures(self):
        measurement = _measurement({"a": _target("generic_timeout_error"), "b": _target(None)})
        assert list(blocked_targets(measurement)) == [("a", Location(country_code="RU", asn="AS12389"))]

    def test_rejects_other_tests(self):
        with pytest.raises(MeasurementError):
            list(blocked_targets(_measurement({}, test_name="web_connectivity")))

    def test_unknown_location_is_rejected(self):
        measurement = _measurement({"a": _target("eof_error")}, probe_cc="ZZ", probe_asn="AS0")
        with pytest.raises(MeasurementError):
            list(blocked_targets(measurement))

    def test_partial_location(self):
        measurement = _measurement({}, probe_cc="ZZ", probe_asn="AS3320")
        assert probe_location(measurement) == Location(asn="AS3320")


def test_external_id_index_covers_bridges_and_transports():
    index = external_id_index(REGISTRY, MASTER_KEY)
    assert index[VANILLA_ID] == FP_A
    assert index[TRANSPORT_ID] == FP_B
    assert index[REGISTRY[FP_B].external_id(MASTER_KEY)] == FP_B


class TestRecordMeasurement:
    """Writing BlockedBridges rows."""

    def test_records_blocked_bridges(self, db: Session):
        measurement = _measurement(
            {
                VANILLA_ID: _target("connection_refused"),
                TRANSPORT_ID: _target("generic_timeout_error"),
                "unknown-id": _target("eof_error"),
                "reachable": _target(None),
            }
        )

        written = record_measurement(db, measurement, REGISTRY, MASTER_KEY)

        assert written == 2
        rows = db.query(BlockedBridgeRecord).order_by(BlockedBridgeRecord.id).all()
        assert [(r.hex_key, r.blocking_country, r.blocking_asn) for r in rows] == [
            (FP_A, "RU", "AS12389"),
            (FP_B, "RU", "AS12389"),
        ]

    def test_same_bridge_recorded_once_per_measurement(self, db: Session):
        bridge_id = REGISTRY[FP_B].external_id(MASTER_KEY)
        measurement = _measurement({bridge_id: _target("eof_error"), TRANSPORT_ID: _target("eof_error")})

        assert record_measurement(db, measurement, REGISTRY, MASTER_KEY) == 1
        assert db.query(BlockedBridgeRecord).count() == 1

    def test_nothing_blocked(self, db: Session):
        assert record_measurement(db, _measurement({}), REGISTRY, MASTER_KEY) == 0
        assert db.query(BlockedBridgeRecord).count() == 0

    def test_missing_table_is_source_unavailable(self, tmp_path: Path):
        from wolpertinger.db.engine import create_db_engine
        from wolpertinger.db.session import create_session_factory

        engine = create_db_engine(f"sqlite:///{tmp_path / 'empty.sqlite'}")
        try:
            with create_session_factory(engine)() as db:
                with pytest.raises(SourceUnavailableError):
                    record_measurement(db, _measurement({VANILLA_ID: _target("eof_error")}), REGISTRY, MASTER_KEY)
        finally:
            engine.dispose()


class TestLoadMeasurement:
    """Reading measurement files."""

    def test_loads_file(self, tmp_path: Path):
        path = tmp_path / "measurement.json"
        path.write_text(
            json.dumps(
                {
                    "probe_cc": "IR",
                    "probe_asn": "AS197207",
                    "test_name": "tor",
                    "test_keys": {
                        "obfs4_total": 1,
                        "obfs4_accessible": 0,
                        "targets": {TRANSPORT_ID: _target("generic_timeout_error")},
                    },
                    "measurement_start_time": "2020-05-01 12:00:00",
                }
            ),
            encoding="utf-8",
        )

        measurement = load_measurement(path)

        assert measurement.test_keys.obfs4_total == 1
        assert measurement.test_keys.targets[TRANSPORT_ID].failure == "generic_timeout_error"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(SourceUnavailableError):
            load_measurement(tmp_path / "missing.json")

    @pytest.mark.parametrize("content", ["not json", '{"probe_cc": "RU"}'])
    def test_invalid_content(self, tmp_path: Path, content: str):
        path = tmp_path / "measurement.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(MeasurementError):
            load_measurement(path)
