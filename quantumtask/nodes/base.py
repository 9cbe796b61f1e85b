import math
import logging
from typing import List, Dict, Any, Tuple

from ..schemas import NodeMetadata

logger = logging.getLogger(__name__)


class ConfigValidationError(ValueError):
    """Raised by a node kind when a submitted configuration is rejected.

    Only the first failing field is reported, mirroring what the editor
    dialog shows to the user.
    """

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


def require_text(values: Dict[str, Any], field: str, message: str, required: bool = True) -> str:
    value = values.get(field)
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ConfigValidationError(field, f"{field.capitalize()} must be text")
    if required and not value.strip():
        raise ConfigValidationError(field, message)
    return value


def optional_text(values: Dict[str, Any], field: str, message: str) -> str:
    value = values.get(field)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigValidationError(field, message)
    return value


def non_negative_int(values: Dict[str, Any], field: str, message: str) -> int:
    """Parse a numeric form value, accepting ints, integral floats and numeric strings."""
    value = values.get(field)
    if isinstance(value, bool) or value is None:
        raise ConfigValidationError(field, message)
    if isinstance(value, str):
        text = value.strip()
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise ConfigValidationError(field, message)
    if not isinstance(value, (int, float)):
        raise ConfigValidationError(field, message)
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ConfigValidationError(field, message)
        value = int(value)
    if value < 0:
        raise ConfigValidationError(field, message)
    return value


def one_of(values: Dict[str, Any], field: str, choices: List[str], label: str) -> str:
    value = values.get(field)
    if value not in choices:
        raise ConfigValidationError(field, f"{label} must be one of {', '.join(choices)}")
    return value


class BaseNodeKind:
    """Registry entry describing one kind of node on the canvas."""
    NODE_TYPE = "base"
    LABEL = "Base"
    DESCRIPTION = "Base Node"
    INPUTS = ["default"]
    OUTPUTS = ["default"]
    PARAMS = {} # Example: {"prompt": {"type": "string"}, "timeout": {"type": "int"}}
    DEFAULTS = {}

    @classmethod
    def get_schema(cls) -> NodeMetadata:
        return NodeMetadata(
            type=cls.NODE_TYPE,
            label=cls.LABEL,
            description=cls.DESCRIPTION,
            inputs=cls.INPUTS,
            outputs=cls.OUTPUTS,
            params=cls.PARAMS,
            defaults=cls.default_config(),
        )

    @classmethod
    def default_config(cls) -> Dict[str, Any]:
        config = dict(cls.DEFAULTS)
        config["isEnabled"] = True
        return config

    @classmethod
    def editable_fields(cls) -> List[str]:
        return ["description"] + list(cls.PARAMS)

    @classmethod
    def draft_from(cls, description: str, config: Dict[str, Any]) -> Dict[str, Any]:
        """Initial dialog values, falling back to defaults for unset fields."""
        draft = {"description": description}
        for name in cls.PARAMS:
            value = config.get(name)
            draft[name] = cls.DEFAULTS.get(name) if value is None else value
        return draft

    @classmethod
    def validate(cls, values: Dict[str, Any], required: bool = True) -> Tuple[str, Dict[str, Any]]:
        """Check dialog values and return (description, coerced config fields).

        With `required=False` blank required text passes, which is how a
        freshly added node is stored. Raises ConfigValidationError on the
        first invalid field.
        """
        raise NotImplementedError

    @classmethod
    def check_stored(cls, description: str, config: Dict[str, Any]) -> Dict[str, Any]:
        """Normalize and type-check the config of an imported node."""
        normalized = cls.normalize_config(config)
        if not isinstance(normalized["isEnabled"], bool):
            raise ConfigValidationError("isEnabled", "Enabled flag must be true or false")
        _, coerced = cls.validate(cls.draft_from(description, normalized), required=False)
        normalized.update(coerced)
        return normalized

    @classmethod
    def normalize_config(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """Fill missing keys of a stored config with defaults and drop unknown ones."""
        unknown = set(config) - set(cls.PARAMS) - {"isEnabled"}
        if unknown:
            logger.warning(f"Dropping unknown {cls.NODE_TYPE} config keys: {sorted(unknown)}")
        normalized = cls.default_config()
        normalized.update({k: v for k, v in config.items() if k not in unknown})
        return normalized

    @classmethod
    def resolve_handle(cls, handle, direction: str) -> str:
        """Map an edge handle id ("out-failure", "failure" or None) to a port name."""
        ports = cls.OUTPUTS if direction == "out" else cls.INPUTS
        name = handle or "default"
        prefix = f"{direction}-"
        if name.startswith(prefix):
            name = name[len(prefix):]
        if name not in ports:
            raise ValueError(f"{cls.LABEL} has no {direction}put handle '{name}'")
        return name
