"""
Dynamic form schema builder.

Turns the active property definitions plus the live enum values into the
three things a server form needs: render-ready field descriptors, a
validation model (core server fields + one field per definition) and the
default values for a blank form.

Everything here is a pure function of its inputs; callers re-run it when the
definitions or enum values change (see services/schema_cache.py).
"""
import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, Callable, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, Type, Union

from pydantic import AfterValidator, BaseModel, Field, StrictBool, StrictFloat, StrictInt, StrictStr, ValidationError, create_model

from dcim.config import settings
from dcim.schemas.form import DynamicFormField
from dcim.schemas.property import CHOICE_TYPES, OptionChoice, PropertyDefinitionData, model_field_name
from dcim.schemas.server import CORE_FIELD_LABELS, CORE_SERVER_KEYS, ServerCore

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "Additional"

# Render kind per property type; anything unknown renders as text
RENDER_KINDS = {
    "text": "text",
    "number": "number",
    "boolean": "boolean",
    "date": "date",
    "select": "select",
    "multiselect": "multiselect",
    "enum": "select",
}

# Defaults for required properties without a stored default_value
ZERO_VALUES = {
    "number": 0,
    "boolean": False,
    "multiselect": [],
}

Number = Union[StrictInt, Annotated[StrictFloat, Field(allow_inf_nan=False)]]

# Core fields constrained to the rack height
RACK_UNIT_FIELDS = {"position", "unit_height"}


@dataclass
class FormSchema:
    fields: List[DynamicFormField]
    validation_schema: Type[BaseModel]
    default_values: Dict[str, Any]
    labels: Dict[str, str] = field(default_factory=dict)
    choices: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def keys(self) -> List[str]:
        return [f.alias or name for name, f in self.validation_schema.model_fields.items()]


@dataclass
class FormValidationResult:
    success: bool
    data: Optional[Dict[str, Any]] = None
    errors: Dict[str, List[str]] = field(default_factory=dict)


# ── option resolution ─────────────────────────────────────────────────────────

def resolve_options(prop: PropertyDefinitionData, enums: Mapping[str, Sequence[str]]) -> List[OptionChoice]:
    """Live enum values win over the definition's static choices."""
    if prop.property_type not in {t.value for t in CHOICE_TYPES}:
        return []
    live = enums.get(prop.key) or []
    if live:
        return [OptionChoice(value=v, label=v) for v in live]
    return list(prop.options.choices)


# ── validators ────────────────────────────────────────────────────────────────

def _check(predicate: Callable[[Any], bool], message: str):
    def validator(value):
        if not predicate(value):
            raise ValueError(message)
        return value
    return AfterValidator(validator)


def _is_iso_datetime(value: str) -> bool:
    if "T" not in value and " " not in value:
        return False
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def _is_multiple(value: float, step: float) -> bool:
    if step == 0:
        return True
    ratio = value / step
    return math.isclose(ratio, round(ratio), abs_tol=1e-9)


def _number_field(prop: PropertyDefinitionData, choices: List[str]):
    label, opts = prop.display_name, prop.options
    checks = []
    if opts.min is not None:
        checks.append(_check(lambda v, m=opts.min: v >= m, f"{label} must be at least {_fmt(opts.min)}"))
    if opts.max is not None:
        checks.append(_check(lambda v, m=opts.max: v <= m, f"{label} must be at most {_fmt(opts.max)}"))
    if opts.step is not None:
        checks.append(_check(lambda v, s=opts.step: _is_multiple(v, s), f"{label} must be a multiple of {_fmt(opts.step)}"))
    return Annotated[(Number, *checks)] if checks else Number


def _boolean_field(prop: PropertyDefinitionData, choices: List[str]):
    return StrictBool


def _date_field(prop: PropertyDefinitionData, choices: List[str]):
    return Annotated[StrictStr, _check(_is_iso_datetime, f"{prop.display_name} must be a valid date")]


def _select_field(prop: PropertyDefinitionData, choices: List[str]):
    # No options resolved: the field degrades to free text
    if not choices:
        return StrictStr
    return Literal[tuple(choices)]


def _multiselect_field(prop: PropertyDefinitionData, choices: List[str]):
    label, opts = prop.display_name, prop.options
    item = Literal[tuple(choices)] if choices else StrictStr
    checks = []
    if opts.min_items is not None:
        checks.append(_check(lambda v, n=opts.min_items: len(v) >= n, f"{label} must have at least {opts.min_items} item(s)"))
    if opts.max_items is not None:
        checks.append(_check(lambda v, n=opts.max_items: len(v) <= n, f"{label} must have at most {opts.max_items} item(s)"))
    return Annotated[(List[item], *checks)] if checks else List[item]


def _text_field(prop: PropertyDefinitionData, choices: List[str]):
    label, opts = prop.display_name, prop.options
    checks = []
    if opts.min_length is not None:
        checks.append(_check(lambda v, n=opts.min_length: len(v) >= n, f"{label} must be at least {opts.min_length} character(s)"))
    if opts.max_length is not None:
        checks.append(_check(lambda v, n=opts.max_length: len(v) <= n, f"{label} must be at most {opts.max_length} character(s)"))
    if opts.pattern is not None:
        try:
            regex = re.compile(opts.pattern)
        except re.error:
            logger.warning("Invalid pattern for property %s ignored: %r", prop.key, opts.pattern)
        else:
            message = opts.pattern_message or f"{label} format is invalid"
            checks.append(_check(lambda v, r=regex: r.search(v) is not None, message))
    if prop.required:
        checks.insert(0, _check(lambda v: len(v) >= 1, f"{label} is required"))
    return Annotated[(StrictStr, *checks)] if checks else StrictStr


VALIDATOR_BUILDERS = {
    "number": _number_field,
    "boolean": _boolean_field,
    "date": _date_field,
    "select": _select_field,
    "enum": _select_field,
    "multiselect": _multiselect_field,
    "text": _text_field,
}


def build_validator(prop: PropertyDefinitionData, choices: List[str]) -> Tuple[Any, Any]:
    """Return ``(annotation, default)`` for the property's model field."""
    builder = VALIDATOR_BUILDERS.get(prop.property_type, _text_field)
    annotation = builder(prop, choices)
    if prop.required:
        return annotation, ...
    return Optional[annotation], None


def _fmt(n: float) -> str:
    return str(int(n)) if float(n).is_integer() else str(n)


# ── defaults ──────────────────────────────────────────────────────────────────

def _cast_number(raw: str) -> Optional[Union[int, float]]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logger.warning("Value %r is not numeric", raw)
        return None
    return int(value) if value.is_integer() else value


def resolve_default(prop: PropertyDefinitionData) -> Any:
    raw = prop.default_value
    if raw is not None:
        if prop.property_type == "number":
            return _cast_number(raw)
        if prop.property_type == "boolean":
            return raw == "true"
        if prop.property_type == "multiselect":
            try:
                parsed = json.loads(raw)
            except ValueError:
                return []
            return parsed if isinstance(parsed, list) else []
        return raw

    if not prop.required:
        return None
    zero = ZERO_VALUES.get(prop.property_type, "")
    return list(zero) if isinstance(zero, list) else zero


# ── schema ────────────────────────────────────────────────────────────────────

def _as_definition(prop: Any) -> PropertyDefinitionData:
    if isinstance(prop, PropertyDefinitionData):
        return prop
    return PropertyDefinitionData.model_validate(prop)


def core_defaults() -> Dict[str, Any]:
    """Blank-form values for the core fields; required ones start as empty strings."""
    return {
        name: "" if info.is_required() else info.default
        for name, info in ServerCore.model_fields.items()
    }


def build_form_schema(
    properties: Sequence[Any],
    enums: Optional[Mapping[str, Sequence[str]]] = None,
) -> FormSchema:
    """Build the server form schema from property definitions and live enum values.

    ``properties`` may be PropertyDefinitionData, ORM rows or plain dicts;
    ``options`` in either legacy shape is accepted.
    """
    enums = enums or {}
    fields: List[DynamicFormField] = []
    model_fields: Dict[str, Any] = {}
    default_values: Dict[str, Any] = core_defaults()
    labels: Dict[str, str] = dict(CORE_FIELD_LABELS)
    choices: Dict[str, List[str]] = {}

    for raw in properties:
        prop = _as_definition(raw)
        name = model_field_name(prop.key)
        if name in model_fields:
            logger.warning("Property %s maps to field %s which is already taken, skipped", prop.key, name)
            continue

        options = resolve_options(prop, enums)
        values = [o.value for o in options]
        default = resolve_default(prop)

        fields.append(DynamicFormField(
            key=prop.key,
            name=prop.name,
            display_name=prop.display_name,
            kind=RENDER_KINDS.get(prop.property_type, "text"),
            property_type=prop.property_type,
            required=prop.required,
            default_value=default,
            options=options,
            category=prop.category or None,
            description=prop.description or None,
            placeholder=f"Enter {prop.display_name.lower()}",
        ))

        annotation, field_default = build_validator(prop, values)
        if name == prop.key:
            model_fields[name] = (annotation, field_default)
        else:
            model_fields[name] = (annotation, Field(field_default, alias=prop.key))

        default_values[prop.key] = default
        labels[prop.key] = prop.display_name
        if values:
            choices[prop.key] = values

    fields.sort(key=lambda f: ((f.category or FALLBACK_CATEGORY).casefold(), f.display_name.casefold()))
    validation_schema = create_model("ServerForm", __base__=ServerCore, **model_fields)

    return FormSchema(
        fields=fields,
        validation_schema=validation_schema,
        default_values=default_values,
        labels=labels,
        choices=choices,
    )


# ── validation ────────────────────────────────────────────────────────────────

NUMBER_ERRORS = {"int_type", "int_parsing", "float_type", "float_parsing", "finite_number"}
BOOL_ERRORS = {"bool_type", "bool_parsing"}


def _error_message(error: Dict[str, Any], key: str, label: str, options: List[str]) -> str:
    kind = error["type"]
    if kind == "missing":
        return f"{label} is required"
    if kind == "value_error":
        return str(error["ctx"]["error"])
    if kind == "string_too_short":
        return f"{label} is required"
    if kind in NUMBER_ERRORS:
        return f"{label} must be a number"
    if kind in BOOL_ERRORS:
        return f"{label} must be true or false"
    if kind == "literal_error":
        return f"{label} must be one of: {', '.join(options)}"
    if kind == "string_type":
        return f"{label} must be text"
    if kind == "list_type":
        return f"{label} must be a list"
    if kind in {"greater_than_equal", "less_than_equal"} and key in RACK_UNIT_FIELDS:
        return f"{label} must be between 1 and {settings.RACK_UNITS}"
    if kind == "greater_than_equal":
        return f"{label} must be at least {_fmt(error['ctx']['ge'])}"
    if kind == "less_than_equal":
        return f"{label} must be at most {_fmt(error['ctx']['le'])}"
    return f"{label}: {error['msg']}"


def collect_errors(exc: ValidationError, schema: FormSchema) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = error.get("loc") or ()
        key = str(loc[0]) if loc else "general"
        label = schema.labels.get(key, key)
        message = _error_message(error, key, label, schema.choices.get(key, []))
        bucket = errors.setdefault(key, [])
        if message not in bucket:
            bucket.append(message)
    return errors


def validate_form_data(schema: FormSchema, data: Mapping[str, Any]) -> FormValidationResult:
    """Run submitted form values through the combined validator."""
    try:
        validated = schema.validation_schema.model_validate(dict(data))
    except ValidationError as exc:
        return FormValidationResult(success=False, errors=collect_errors(exc, schema))
    return FormValidationResult(success=True, data=validated.model_dump(by_alias=True))


# ── submission helpers ────────────────────────────────────────────────────────

def _normalize_date(value: str) -> Optional[str]:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).isoformat()
    except ValueError:
        return None


def prepare_submission(data: Mapping[str, Any], properties: Sequence[Any]) -> Dict[str, Any]:
    """Normalise validated values before they are persisted."""
    prepared = dict(data)
    for raw in properties:
        prop = _as_definition(raw)
        value = prepared.get(prop.key)
        if value is None:
            continue

        kind = prop.property_type
        if kind == "date":
            if isinstance(value, str):
                prepared[prop.key] = _normalize_date(value)
        elif kind == "multiselect":
            prepared[prop.key] = list(value) if isinstance(value, list) else []
        elif kind == "number":
            if isinstance(value, str):
                prepared[prop.key] = _cast_number(value) if value.strip() else None
        elif kind == "boolean":
            prepared[prop.key] = bool(value)
        elif isinstance(value, str) and value == "" and not prop.required:
            prepared[prop.key] = None
    return prepared


def split_submission(data: Mapping[str, Any], properties: Sequence[Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Separate core column values from dynamic property values. Unknown keys are dropped."""
    core = {k: v for k, v in data.items() if k in CORE_SERVER_KEYS}
    keys = {_as_definition(p).key for p in properties}
    dynamic = {k: v for k, v in data.items() if k in keys}
    return core, dynamic
