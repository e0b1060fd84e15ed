"""
Pydantic models for cached GeoNames records.

Field names are snake_case; every field also accepts the spelling used by the
GeoNames web service and by the storage columns, so API payloads and query
rows can be validated directly.
"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr, ValidationInfo, field_validator

from .errors import IdentityConflictError

if TYPE_CHECKING:
    from .registry import EntityRegistry

logger = logging.getLogger(__name__)

LOAD_SOURCES = ("location", "country", "api")


def is_empty(value: Any) -> bool:
    """True for None, empty strings and zero, the values a coalescing merge skips."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return False


def as_mapping(values: Any) -> dict[str, Any]:
    """
    Turn a mapping, sqlite3.Row, model, namedtuple or plain object into a dict.

    Raises:
        TypeError: the object exposes neither keys nor attributes
    """
    if isinstance(values, Mapping):
        return dict(values)
    if isinstance(values, BaseModel):
        return values.model_dump()
    if hasattr(values, "_asdict"):
        return dict(values._asdict())
    if hasattr(values, "keys"):
        # sqlite3.Row
        return {key: values[key] for key in values.keys()}
    if hasattr(values, "__dict__"):
        return dict(vars(values))

    slots: list[str] = []
    for klass in type(values).__mro__:
        declared = getattr(klass, "__slots__", ())
        slots.extend([declared] if isinstance(declared, str) else declared)
    if not slots:
        raise TypeError(f"Cannot read values from {type(values).__name__}")
    return {name: getattr(values, name) for name in slots if hasattr(values, name)}


class LocationRecord(BaseModel):
    """
    A GeoNames feature as stored in the location cache.

    ``geoname_id`` identifies the record and may only be set once.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    IDENTITY_FIELDS: ClassVar[tuple[str, ...]] = ("geoname_id",)

    geoname_id: int = Field(default=0, validation_alias=AliasChoices("geoname_id", "geonameId", "id"))
    name: str = ""
    ascii_name: str = Field(default="", validation_alias=AliasChoices("ascii_name", "asciiName", "asciiname"))
    latitude: float = Field(default=0.0, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(default=0.0, validation_alias=AliasChoices("longitude", "lng"))
    feature_class: str = Field(default="", validation_alias=AliasChoices("feature_class", "fcl", "featureClass"))
    feature_code: str = Field(default="", validation_alias=AliasChoices("feature_code", "fcode", "featureCode"))
    country_code: str = Field(default="", validation_alias=AliasChoices("country_code", "countryCode"))
    country_id: int = Field(default=0, validation_alias=AliasChoices("country_id", "countryId"))
    admin1_code: str = Field(default="", validation_alias=AliasChoices("admin1_code", "adminCode1"))
    admin2_code: str = Field(default="", validation_alias=AliasChoices("admin2_code", "adminCode2"))
    continent_code: str = Field(
        default="", validation_alias=AliasChoices("continent_code", "continentCode", "continent")
    )
    population: int = 0
    elevation: int = 0
    timezone: str = Field(default="", validation_alias=AliasChoices("timezone", "timeZoneId"))

    _registry: Optional["EntityRegistry"] = PrivateAttr(default=None)
    _id_location: Optional[int] = PrivateAttr(default=None)
    _id_country: Optional[int] = PrivateAttr(default=None)
    _id_api: Optional[int] = PrivateAttr(default=None)

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_blank(cls, value: Any, info: ValidationInfo) -> Any:
        """Map NULLs and the API's string-typed numbers onto the field types."""
        annotation = cls.model_fields[info.field_name].annotation
        if annotation is str:
            if value is None:
                return ""
            if isinstance(value, dict):
                # the API nests the timezone: {"timeZoneId": ..., "gmtOffset": ...}
                return value.get("timeZoneId", "")
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return str(value)
            return value
        if annotation is int:
            if value is None:
                return 0
            if isinstance(value, str):
                value = value.strip()
                return int(float(value)) if value else 0
            return value
        if annotation is float:
            if value is None or value == "":
                return 0.0
        return value

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self.IDENTITY_FIELDS:
            current = getattr(self, name)
            if value == current or is_empty(value):
                if is_empty(value) and not is_empty(current):
                    raise IdentityConflictError(
                        f"{name} of an object cannot be cleared. Old: {current!r}"
                    )
                return
            if not is_empty(current):
                raise IdentityConflictError(
                    f"{name} of an object cannot be changed. Old: {current!r}, New: {value!r}"
                )
            if self._registry is not None:
                self._registry.claim(self, name, value)
        super().__setattr__(name, value)

    def set_geoname_id(self, geoname_id: int) -> "LocationRecord":
        """Set the geoname id; a no-op if unchanged, a conflict if already set."""
        self.geoname_id = int(geoname_id)
        return self

    def get_country_id(self) -> int:
        return self.country_id

    def get_country_code(self, fmt: str = "iso2") -> Optional[str]:
        """Country code of the record. Plain locations only know ISO2."""
        if fmt != "iso2":
            raise ValueError(f"Unsupported country code format for a location: {fmt}")
        return self.country_code or None

    @property
    def id_location(self) -> Optional[int]:
        """Geoname id of the location-cache row this record was loaded from."""
        return self._id_location

    @property
    def id_country(self) -> Optional[int]:
        """Geoname id of the country row this record was loaded from."""
        return self._id_country

    @property
    def id_api(self) -> Optional[int]:
        """Geoname id returned by the web service, if the record was fetched."""
        return self._id_api

    def mark_loaded(self, source: str, geoname_id: Optional[int] = None) -> None:
        """Record that data for this entity came from ``source``."""
        if source not in LOAD_SOURCES:
            raise ValueError(f"Unknown load source: {source}")
        geoname_id = geoname_id or self.geoname_id
        if geoname_id:
            self.set_geoname_id(geoname_id)
        setattr(self, f"_id_{source}", geoname_id or None)

    def load_values(self, values: Any) -> "LocationRecord":
        """
        Merge ``values`` into this record without losing data.

        Keys may use any accepted alias. A field is only replaced when the
        incoming value is non-empty, so partial payloads never erase richer
        data already held. Identity fields go through the usual guard and
        raise IdentityConflictError on a mismatch.

        Args:
            values: Mapping, sqlite3.Row, model or plain object

        Returns:
            self
        """
        incoming = type(self).model_validate(as_mapping(values))
        for field_name in type(self).model_fields:
            if field_name not in incoming.model_fields_set:
                continue
            value = getattr(incoming, field_name)
            if is_empty(value) or value == getattr(self, field_name):
                continue
            setattr(self, field_name, value)
        return self

    def model_dump_for_db(self) -> dict[str, Any]:
        """Column values for the location cache table."""
        return {
            "geoname_id": self.geoname_id,
            "name": self.name,
            "ascii_name": self.ascii_name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "feature_class": self.feature_class,
            "feature_code": self.feature_code,
            "country_code": self.get_country_code() or "",
            "country_id": self.get_country_id(),
            "admin1_code": self.admin1_code,
            "admin2_code": self.admin2_code,
            "continent_code": self.continent_code,
            "population": self.population,
            "elevation": self.elevation,
            "timezone": self.timezone,
        }


class CountryRecord(LocationRecord):
    """A country: a location with ISO codes and country-level attributes."""

    IDENTITY_FIELDS: ClassVar[tuple[str, ...]] = ("geoname_id", "iso2")

    iso2: str = Field(default="", validation_alias=AliasChoices("iso2", "countryCode", "country_code"))
    iso3: str = Field(default="", validation_alias=AliasChoices("iso3", "isoAlpha3"))
    iso_numeric: int = Field(default=0, validation_alias=AliasChoices("iso_numeric", "isoNumeric", "isoN"))
    fips_code: str = Field(
        default="",
        validation_alias=AliasChoices(
            "fips_code", "fips", "fipsCode", "equivalentFipsCode", "equivalent_fips_code"
        ),
    )
    country_name: str = Field(default="", validation_alias=AliasChoices("country_name", "countryName", "country"))
    capital: str = ""
    area: int = Field(default=0, validation_alias=AliasChoices("area", "areaInSqKm"))
    tld: str = ""
    currency_code: str = Field(default="", validation_alias=AliasChoices("currency_code", "currencyCode"))
    currency_name: str = Field(default="", validation_alias=AliasChoices("currency_name", "currencyName"))
    phone: str = ""
    postal_code_format: str = Field(
        default="", validation_alias=AliasChoices("postal_code_format", "postalCodeFormat")
    )
    postal_code_regex: str = Field(default="", validation_alias=AliasChoices("postal_code_regex", "postalCodeRegex"))
    languages: str = ""
    neighbours: str = ""

    def set_iso2(self, iso2: str) -> "CountryRecord":
        """Set the ISO2 code; a no-op if unchanged, a conflict if already set."""
        self.iso2 = iso2
        return self

    def get_country_id(self) -> int:
        """A country is its own country: the inherited ``country_id`` field is ignored."""
        return self.geoname_id

    def get_country_code(self, fmt: str = "iso2") -> Optional[str]:
        """
        Country code in the requested format.

        Args:
            fmt: "iso2", "iso3" or "iso_numeric"

        Returns:
            The code, or None if it is not known
        """
        if fmt == "iso2":
            value = self.iso2
        elif fmt == "iso3":
            value = self.iso3
        elif fmt in ("iso_numeric", "isoN"):
            value = str(self.iso_numeric) if self.iso_numeric else ""
        else:
            raise ValueError(f"Unsupported country code format: {fmt}")
        return value or None

    def model_dump_for_country_db(self) -> dict[str, Any]:
        """Column values for the country info table."""
        return {
            "geoname_id": self.geoname_id,
            "iso2": self.iso2,
            "iso3": self.iso3,
            "iso_numeric": self.iso_numeric,
            "fips": self.fips_code,
            "country": self.country_name or self.ascii_name or self.name,
            "capital": self.capital,
            "languages": self.languages,
            "continent": self.continent_code,
            "neighbours": self.neighbours,
            "area": self.area,
            "population": self.population,
            "tld": self.tld,
            "currency_code": self.currency_code,
            "currency_name": self.currency_name,
            "phone": self.phone,
            "postal_code_format": self.postal_code_format,
            "postal_code_regex": self.postal_code_regex,
        }
