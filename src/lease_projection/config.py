# src/lease_projection/config.py
"""
Configuration Loading

Reads a projection input document (YAML or JSON) into ProjectionInputs.

Document layout mirrors the dataclasses in ``core.types``:

    rent_model: FIXED_ESCALATION
    rent_params: {base_rent: 10000000, growth_rate: 0.03, frequency_years: 1}
    system_config: {zakat_rate: 0.025, ...}
    historical_years: [{year: 2023, tuition_revenue: ..., ...}, ...]
    transition_years: [{year: 2025, revenue_growth_rate: 0.05}, ...]
    dynamic_config: {enrollment: {...}, curriculum: {...}, staff: {...}}

Numbers are converted to Decimal through their string form, so YAML
floats such as 0.05 become Decimal('0.05').
"""

import json
import typing
from dataclasses import MISSING, asdict, fields, is_dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml

from .core.decimal_utils import to_decimal
from .core.exceptions import ConfigurationError
from .core.serialization import deserialize_decimals
from .core.types import RENT_PARAM_TYPES, ProjectionInputs
from .periods.rent_models import parse_rent_model

YAML_SUFFIXES = ('.yaml', '.yml')


def _convert(annotation: Any, value: Any, path: str) -> Any:
    """Convert one plain value to the annotated field type."""
    if value is None:
        return None

    origin = typing.get_origin(annotation)
    if origin is Union:
        options = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(options) != 1:
            raise ConfigurationError(f"{path}: ambiguous field type", field=path)
        return _convert(options[0], value, path)

    if origin in (list, typing.List):
        if not isinstance(value, (list, tuple)):
            raise ConfigurationError(f"{path}: expected a list", field=path)
        (item_type,) = typing.get_args(annotation)
        return [_convert(item_type, item, f"{path}[{i}]") for i, item in enumerate(value)]

    if annotation is Decimal:
        try:
            return to_decimal(value)
        except ValueError as e:
            raise ConfigurationError(f"{path}: {e}", field=path) from None

    if annotation is bool:
        if not isinstance(value, bool):
            raise ConfigurationError(f"{path}: expected true or false", field=path)
        return value

    if annotation is int:
        if isinstance(value, bool):
            raise ConfigurationError(f"{path}: expected a whole number", field=path)
        try:
            number = to_decimal(value)
        except ValueError as e:
            raise ConfigurationError(f"{path}: {e}", field=path) from None
        if number != number.to_integral_value():
            raise ConfigurationError(f"{path}: expected a whole number, got {value}",
                                     field=path)
        return int(number)

    if isinstance(annotation, type) and issubclass(annotation, Enum):
        if isinstance(value, annotation):
            return value
        try:
            return annotation(str(value).upper())
        except ValueError:
            valid = ', '.join(m.value for m in annotation)
            raise ConfigurationError(
                f"{path}: unknown value {value!r}; expected one of {valid}",
                field=path) from None

    if is_dataclass(annotation):
        return _build(annotation, value, path)

    return value


def _build(cls, data: Any, path: str):
    """Instantiate a dataclass from a mapping, converting every field."""
    if isinstance(data, cls):
        return data
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{path}: expected a mapping", field=path)

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"{path}: unknown field(s) {', '.join(unknown)}",
                                 field=f"{path}.{unknown[0]}")

    hints = typing.get_type_hints(cls)
    kwargs = {}
    for f in fields(cls):
        if f.name not in data:
            if f.default is MISSING and f.default_factory is MISSING:
                raise ConfigurationError(f"{path}: missing required field '{f.name}'",
                                         field=f.name)
            continue
        kwargs[f.name] = _convert(hints[f.name], data[f.name], f"{path}.{f.name}")
    return cls(**kwargs)


def inputs_from_dict(data: Mapping[str, Any]) -> ProjectionInputs:
    """
    Build ProjectionInputs from a plain mapping.

    ``rent_params`` is built as the parameter type of the selected
    ``rent_model``; every other section follows its dataclass.

    Raises:
        ConfigurationError: Unknown, missing or malformed fields
    """
    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration must be a mapping at the top level")

    data = dict(data)
    if 'rent_model' not in data:
        raise ConfigurationError("Missing required field 'rent_model'", field='rent_model')
    rent_model = parse_rent_model(data['rent_model'])
    data['rent_model'] = rent_model

    raw_params = data.pop('rent_params', None)
    rent_params = None
    if raw_params is not None:
        rent_params = _build(RENT_PARAM_TYPES[rent_model], raw_params, 'rent_params')
    data['rent_params'] = rent_params

    hints = typing.get_type_hints(ProjectionInputs)
    converted: Dict[str, Any] = {}
    for f in fields(ProjectionInputs):
        if f.name not in data:
            if f.default is MISSING and f.default_factory is MISSING:
                raise ConfigurationError(f"Missing required section '{f.name}'", field=f.name)
            continue
        if f.name in ('rent_model', 'rent_params'):
            converted[f.name] = data[f.name]
        else:
            converted[f.name] = _convert(hints[f.name], data[f.name], f.name)

    unknown = sorted(set(data) - set(hints))
    if unknown:
        raise ConfigurationError(f"Unknown section(s) {', '.join(unknown)}", field=unknown[0])
    return ProjectionInputs(**converted)


def _plain(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {key: _plain(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_plain(value) for value in obj]
    return obj


def inputs_to_dict(inputs: ProjectionInputs) -> Dict[str, Any]:
    """Plain mapping of an input snapshot; Decimals kept, Enums as values."""
    return _plain(asdict(inputs))


def load_inputs(path: Union[str, Path]) -> ProjectionInputs:
    """
    Load projection inputs from a YAML or JSON file.

    JSON files may carry tagged Decimals as written by ``core.serialization``.

    Args:
        path: .yaml, .yml or .json file

    Returns:
        ProjectionInputs

    Raises:
        ConfigurationError: Unreadable file, unsupported format or invalid content
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in YAML_SUFFIXES + ('.json',):
        raise ConfigurationError(f"Unsupported configuration format '{suffix}'; "
                                 f"use YAML or JSON", field='path')

    try:
        text = path.read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}", field='path') from e

    try:
        if suffix in YAML_SUFFIXES:
            data = yaml.safe_load(text)
        else:
            data = deserialize_decimals(json.loads(text))
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot parse configuration {path}: {e}", field='path') from e

    return inputs_from_dict(data)
