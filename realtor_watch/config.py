from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from realtor_watch.errors import ConfigError

REQUIRED_ENV_VARS = {
    "aws_region": "AWS_REGION",
    "aws_account_id": "AWS_ACCOUNT_ID",
    "dynamo_table_name": "DYNAMO_TABLE_NAME",
    "sns_topic_name": "SNS_TOPIC_NAME",
}

# Form field names expected by the PropertySearch_Post endpoint
SEARCH_FORM_FIELDS = {
    "zoom_level": "ZoomLevel",
    "latitude_max": "LatitudeMax",
    "longitude_max": "LongitudeMax",
    "latitude_min": "LatitudeMin",
    "longitude_min": "LongitudeMin",
    "sort": "Sort",
    "property_type_group_id": "PropertyTypeGroupID",
    "property_search_type_id": "PropertySearchTypeId",
    "transaction_type_id": "TransactionTypeId",
    "price_min": "PriceMin",
    "price_max": "PriceMax",
    "bed_range": "BedRange",
    "bath_range": "BathRange",
    "building_type_id": "BuildingTypeId",
    "construction_style_id": "ConstructionStyleId",
    "currency": "Currency",
    "records_per_page": "RecordsPerPage",
    "application_id": "ApplicationId",
    "culture_id": "CultureId",
    "version": "Version",
    "current_page": "CurrentPage",
}


@dataclass(frozen=True)
class SearchCriteria:
    """Search form sent to the listing endpoint.

    Defaults cover detached houses in Kitchener-Waterloo.
    """

    zoom_level: str = "13"
    latitude_max: str = "43.51949"
    longitude_max: str = "-80.43042"
    latitude_min: str = "43.42644"
    longitude_min: str = "-80.66406"
    sort: str = "6-D"
    property_type_group_id: str = "1"
    property_search_type_id: str = "1"
    transaction_type_id: str = "2"
    price_min: str = "539000"
    price_max: str = "701000"
    bed_range: str = "3-0"
    bath_range: str = "2-0"
    building_type_id: str = "1"
    construction_style_id: str = "3"
    currency: str = "CAD"
    records_per_page: str = "20"
    application_id: str = "1"
    culture_id: str = "1"
    version: str = "7.0"
    current_page: str = ""

    def to_form(self) -> Dict[str, str]:
        return {form_name: getattr(self, attr) for attr, form_name in SEARCH_FORM_FIELDS.items()}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SearchCriteria":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ConfigError(f"Unknown search criteria: {', '.join(unknown)}")
        # YAML turns bare numbers into ints/floats; the form only carries strings
        values = {key: "" if value is None else str(value) for key, value in raw.items()}
        return cls(**values)


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""

    aws_region: str
    aws_account_id: str
    dynamo_table_name: str
    sns_topic_name: str
    search: SearchCriteria = field(default_factory=SearchCriteria)
    request_timeout_seconds: float = 30.0
    # Time kept in reserve before the invocation deadline
    deadline_margin_seconds: float = 5.0
    # Mark a listing seen even when its alert could not be sent
    mark_seen_on_notify_failure: bool = True

    @property
    def sns_topic_arn(self) -> str:
        return f"arn:aws:sns:{self.aws_region}:{self.aws_account_id}:{self.sns_topic_name}"


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open() as fh:
        return yaml.safe_load(fh) or {}


TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"Invalid value for {name}: {value!r} (expected true or false)")


def _parse_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e


def load_config(
    path: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Build the configuration from an optional YAML file and the environment.

    Environment variables take precedence over the file. Raises ConfigError
    naming every required value that is missing.
    """
    env = os.environ if environ is None else environ

    raw: Dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            raw = _load_yaml(config_path)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

    required: Dict[str, str] = {}
    missing = []
    for attr, env_name in REQUIRED_ENV_VARS.items():
        value = env.get(env_name) or raw.get(attr)
        if not value:
            missing.append(env_name)
        else:
            required[attr] = str(value)
    if missing:
        raise ConfigError(
            f"Required configuration not set: {', '.join(missing)}",
            missing=missing,
        )

    search_raw = raw.get("search") or {}
    if not isinstance(search_raw, dict):
        raise ConfigError("'search' must be a mapping of search criteria")

    timeout = env.get("REQUEST_TIMEOUT_SECONDS", raw.get("request_timeout_seconds", 30))
    margin = env.get("DEADLINE_MARGIN_SECONDS", raw.get("deadline_margin_seconds", 5))
    mark_seen = env.get(
        "MARK_SEEN_ON_NOTIFY_FAILURE", raw.get("mark_seen_on_notify_failure", True)
    )

    return AppConfig(
        search=SearchCriteria.from_dict(search_raw),
        request_timeout_seconds=_parse_float("request_timeout_seconds", timeout),
        deadline_margin_seconds=_parse_float("deadline_margin_seconds", margin),
        mark_seen_on_notify_failure=_parse_bool("mark_seen_on_notify_failure", mark_seen),
        **required,
    )
