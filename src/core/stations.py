"""
Station directory and station token issuance.

The directory (stations, credential hashes, static sheet table and copy
templates) is loaded once from STATIONS_CONFIG_PATH and never mutated.
Tokens are signed here but verified elsewhere.
"""

import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import jwt
from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from util.logging import logger

from .config import JWT_ALGORITHM, JWT_EXPIRES_HOURS, get_jwt_secret, get_stations_config_path
from .errors import AuthenticationError, UpstreamError
from .schema import SHEET_TYPES, STATIONS, SheetLocation

HASH_SCHEME = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 100000


class StationConfigError(ValueError):
    """Station directory file is malformed."""
    pass


@dataclass(frozen=True)
class Station:
    name: str
    secret_hash: Optional[str] = None


@dataclass(frozen=True)
class StationDirectory:
    """Immutable view of the configured stations and their sheets."""
    stations: Tuple[Station, ...]
    sheets: Mapping[Tuple[str, str], SheetLocation]
    templates: Mapping[str, str]

    def get(self, name: str) -> Optional[Station]:
        for station in self.stations:
            if station.name == name:
                return station
        return None

    @property
    def first_station(self) -> Optional[Station]:
        return self.stations[0] if self.stations else None

    def static_sheet(self, station: str, form_type: str) -> Optional[SheetLocation]:
        return self.sheets.get((station, form_type))


def _derive(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )


def hash_secret(secret: str, iterations: int = DEFAULT_ITERATIONS, salt: bytes = None) -> str:
    """Encode a station secret as pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>."""
    salt = salt or secrets.token_bytes(16)
    digest = _derive(salt, iterations).derive(secret.encode())
    return f"{HASH_SCHEME}${iterations}${salt.hex()}${digest.hex()}"


def verify_secret(secret: str, encoded: Optional[str]) -> bool:
    """Constant-time check of a secret against an encoded hash."""
    if not secret or not encoded:
        return False
    try:
        scheme, iterations, salt_hex, digest_hex = encoded.split("$")
        if scheme != HASH_SCHEME:
            return False
        kdf = _derive(bytes.fromhex(salt_hex), int(iterations))
        kdf.verify(secret.encode(), bytes.fromhex(digest_hex))
        return True
    except InvalidKey:
        return False
    except ValueError:
        logger.warning("Malformed station secret hash in station directory")
        return False


def _parse_directory(data: Dict[str, Any]) -> StationDirectory:
    stations = []
    for entry in data.get("stations", [{"name": name} for name in STATIONS]):
        name = entry.get("name")
        if name not in STATIONS:
            raise StationConfigError(f"Unknown station in directory: {name}")
        stations.append(Station(name=name, secret_hash=entry.get("secret_hash")))

    sheets = {}
    for station, forms in data.get("sheets", {}).items():
        if station not in STATIONS:
            raise StationConfigError(f"Unknown station in sheet table: {station}")
        for form_type, location in forms.items():
            if form_type not in SHEET_TYPES:
                raise StationConfigError(f"Unknown form type in sheet table: {form_type}")
            sheets[(station, form_type)] = SheetLocation(
                identifier=location["id"],
                url=location["url"],
                source="static",
            )

    templates = {}
    for form_type, template_id in data.get("templates", {}).items():
        if form_type not in SHEET_TYPES:
            raise StationConfigError(f"Unknown form type in templates: {form_type}")
        templates[form_type] = template_id

    return StationDirectory(
        stations=tuple(stations),
        sheets=MappingProxyType(sheets),
        templates=MappingProxyType(templates),
    )


def load_station_directory(path: str = None) -> StationDirectory:
    """Load the station directory from a JSON file, or built-in defaults."""
    if not path:
        return _parse_directory({})

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    directory = _parse_directory(data)
    logger.info(
        f"Loaded station directory from {path}: {len(directory.stations)} stations, "
        f"{len(directory.sheets)} static sheets, {len(directory.templates)} templates"
    )
    return directory


@lru_cache(maxsize=1)
def get_station_directory() -> StationDirectory:
    """Process-wide station directory, loaded on first use."""
    return load_station_directory(get_stations_config_path())


def issue_station_token(station: str, secret: str, directory: StationDirectory = None,
                        now: datetime = None) -> str:
    """Sign a time-limited token asserting the station's identity."""
    directory = directory or get_station_directory()
    entry = directory.get(station)

    if entry is None:
        logger.log_auth_attempt(str(station), "failed", "unknown station")
        raise AuthenticationError("Invalid station or password")
    if not verify_secret(secret, entry.secret_hash):
        logger.log_auth_attempt(station, "failed", "bad secret")
        raise AuthenticationError("Invalid station or password")

    signing_secret = get_jwt_secret()
    if not signing_secret:
        logger.error("Station token requested but JWT_SECRET is not configured")
        raise UpstreamError("Token signing is not configured")

    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": station,
        "station": station,
        "iat": now,
        "exp": now + timedelta(hours=JWT_EXPIRES_HOURS),
    }
    token = jwt.encode(payload, signing_secret, algorithm=JWT_ALGORITHM)

    logger.log_auth_attempt(station, "success")
    return token
