"""
OpenSky state vector parsing.

OpenSky state vector format (array indices):
0: icao24          - ICAO24 hex address
1: callsign        - Callsign (8 chars max)
2: origin_country  - Country of registration
3: time_position   - Unix timestamp of last position update
4: last_contact    - Unix timestamp of last message
5: longitude       - WGS84 longitude
6: latitude        - WGS84 latitude
7: baro_altitude   - Barometric altitude (meters)
8: on_ground       - Boolean
9: velocity        - Ground speed (m/s)
10: true_track     - Track angle (degrees, 0=north)
11: vertical_rate  - Vertical rate (m/s)
12: sensors        - Sensor IDs (array)
13: geo_altitude   - Geometric altitude (meters)
14: squawk         - Transponder code
15: spi            - Special position indicator
16: position_source - 0=ADS-B, 1=ASTERIX, 2=MLAT, 3=FLARM

The payload is untrusted: every field is type-checked and anything of the
wrong type becomes None. Only a missing identifier rejects a vector, and a
rejected vector never sinks the rest of the batch.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, List, NamedTuple, Optional, Sequence, Tuple

from airglobe.exceptions import ValidationError

logger = logging.getLogger(__name__)

STATE_VECTOR_LENGTH = 17


@dataclass(frozen=True)
class AircraftRecord:
    """
    Parsed state vector from OpenSky API.

    All values except icao24 may be None if not reported by the aircraft
    or reported with the wrong type.
    """
    icao24: str
    callsign: Optional[str]
    origin_country: Optional[str]
    time_position: Optional[int]
    last_contact: Optional[int]
    longitude: Optional[float]
    latitude: Optional[float]
    baro_altitude: Optional[float]
    on_ground: Optional[bool]
    velocity: Optional[float]
    true_track: Optional[float]
    vertical_rate: Optional[float]
    sensors: Optional[Tuple[int, ...]]
    geo_altitude: Optional[float]
    squawk: Optional[str]
    spi: Optional[bool]
    position_source: Optional[int]

    def has_valid_position(self) -> bool:
        return is_valid_position(self)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict for API responses."""
        return {
            'icao24': self.icao24,
            'callsign': self.callsign,
            'originCountry': self.origin_country,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'barometricAltitude': self.baro_altitude,
            'geometricAltitude': self.geo_altitude,
            'velocity': self.velocity,
            'heading': self.true_track,
            'verticalRate': self.vertical_rate,
            'onGround': self.on_ground,
            'timePosition': self.time_position,
            'lastContact': self.last_contact,
            'sensors': list(self.sensors) if self.sensors is not None else None,
            'squawk': self.squawk,
            'spi': self.spi,
            'positionSource': self.position_source,
        }


class ParseResult(NamedTuple):
    """Outcome of parsing one vector: exactly one of record/error is set."""
    record: Optional[AircraftRecord]
    error: Optional[ValidationError]


def _number(value: Any) -> Optional[float]:
    # bool is an int subclass but never a valid numeric reading
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # NaN/Infinity decode from upstream JSON but cannot be re-serialized
    if not math.isfinite(value):
        return None
    return value


def _boolean(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _squawk(value: Any) -> Optional[str]:
    if _number(value) is not None:
        return str(value)
    return _text(value)


def _sensors(value: Any) -> Optional[Tuple[int, ...]]:
    if not isinstance(value, (list, tuple)):
        return None
    if not all(_number(v) is not None for v in value):
        return None
    return tuple(value)


def parse_state_vector(raw: Sequence[Any]) -> AircraftRecord:
    """
    Parse one OpenSky state vector array into an AircraftRecord.

    Short arrays are tolerated; missing trailing fields read as None.

    Raises:
        ValidationError if the vector is not an array or has no usable
        icao24 identifier
    """
    if not isinstance(raw, (list, tuple)):
        raise ValidationError(f'State vector is not an array: {type(raw).__name__}')

    fields = list(raw[:STATE_VECTOR_LENGTH])
    fields += [None] * (STATE_VECTOR_LENGTH - len(fields))

    icao24 = fields[0]
    if not isinstance(icao24, str) or not icao24.strip():
        raise ValidationError('Missing or invalid ICAO24 identifier')

    return AircraftRecord(
        icao24=icao24.strip().upper(),
        callsign=_text(fields[1]),
        origin_country=_text(fields[2]),
        time_position=_number(fields[3]),
        last_contact=_number(fields[4]),
        longitude=_number(fields[5]),
        latitude=_number(fields[6]),
        baro_altitude=_number(fields[7]),
        on_ground=_boolean(fields[8]),
        velocity=_number(fields[9]),
        true_track=_number(fields[10]),
        vertical_rate=_number(fields[11]),
        sensors=_sensors(fields[12]),
        geo_altitude=_number(fields[13]),
        squawk=_squawk(fields[14]),
        spi=_boolean(fields[15]),
        position_source=_number(fields[16]),
    )


def try_parse_state_vector(raw: Sequence[Any]) -> ParseResult:
    """Parse without raising; the failure comes back in the result."""
    try:
        return ParseResult(parse_state_vector(raw), None)
    except ValidationError as e:
        return ParseResult(None, e)


def parse_state_vectors(raw_vectors: Sequence[Sequence[Any]]) -> List[AircraftRecord]:
    """
    Parse a batch of state vectors.

    Malformed vectors are logged and dropped; the rest of the batch is
    always returned.
    """
    records = []
    dropped = 0

    for index, raw in enumerate(raw_vectors):
        result = try_parse_state_vector(raw)
        if result.error is not None:
            dropped += 1
            logger.warning(f'Dropping state vector #{index}: {result.error}')
            continue
        records.append(result.record)

    logger.debug(f'Parsed {len(records)} state vectors, dropped {dropped}')
    return records


def is_valid_position(record: AircraftRecord) -> bool:
    """Check if the record has a latitude/longitude within WGS84 ranges."""
    return (
        record.latitude is not None and
        record.longitude is not None and
        -90 <= record.latitude <= 90 and
        -180 <= record.longitude <= 180
    )
