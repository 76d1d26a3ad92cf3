"""Per-kind node configuration helpers.

Every function here is a pure transformation: the configuration passed in is
never modified, a new instance is returned instead. The registry only ever
sees whole configurations.
"""

from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, ValidationError

from ..models.core import (
    CONFIG_MODELS,
    AutomatedConfig,
    CustomField,
    NodeConfig,
    NodeKind,
)
from .exceptions import NodeConfigError


def empty_config(kind: Union[NodeKind, str]) -> NodeConfig:
    """Return the blank configuration for a node kind."""
    return CONFIG_MODELS[NodeKind(kind)]()


def coerce_config(kind: Union[NodeKind, str], config: Union[NodeConfig, Dict[str, Any], None]) -> NodeConfig:
    """
    Turn a raw mapping (or an existing model) into the variant for ``kind``.

    Raises:
        NodeConfigError: If the data does not fit the kind's schema
    """
    kind = NodeKind(kind)
    model_cls = CONFIG_MODELS[kind]

    if config is None:
        return model_cls()
    if isinstance(config, model_cls):
        return config.model_copy(deep=True)
    if isinstance(config, BaseModel):
        raise NodeConfigError(
            f"{type(config).__name__} cannot configure a '{kind.value}' node",
            node_kind=kind.value
        )

    try:
        return model_cls.model_validate(config)
    except ValidationError as e:
        raise NodeConfigError(
            f"Invalid configuration for '{kind.value}' node: {e.error_count()} error(s)",
            node_kind=kind.value,
            details={"validation_errors": e.errors(include_url=False, include_context=False, include_input=False)}
        ) from e


def _field_name(config: NodeConfig, name: str) -> str:
    fields = type(config).model_fields
    if name in fields:
        return name
    for field_name, info in fields.items():
        if info.alias == name:
            return field_name
    raise NodeConfigError(
        f"Unknown configuration field '{name}' for {type(config).__name__}",
        field=name
    )


def update_field(config: NodeConfig, name: str, value: Any) -> NodeConfig:
    """Return a copy of ``config`` with one field replaced and re-validated."""
    field_name = _field_name(config, name)
    data = config.model_dump()
    data[field_name] = value
    try:
        return type(config).model_validate(data)
    except ValidationError as e:
        raise NodeConfigError(
            f"Invalid value for '{name}'",
            field=name,
            details={"validation_errors": e.errors(include_url=False, include_context=False, include_input=False)}
        ) from e


def _require_custom_fields(config: NodeConfig) -> None:
    if "custom_fields" not in type(config).model_fields:
        raise NodeConfigError(
            f"{type(config).__name__} does not support custom fields",
            field="customFields"
        )


def append_custom_field(config: NodeConfig) -> NodeConfig:
    """Append an empty key/value pair, to be edited afterwards."""
    _require_custom_fields(config)
    fields = [field.model_copy() for field in config.custom_fields]
    fields.append(CustomField())
    return config.model_copy(update={"custom_fields": fields})


def update_custom_field(
    config: NodeConfig,
    index: int,
    key: Optional[str] = None,
    value: Optional[str] = None
) -> NodeConfig:
    """
    Change the custom field at ``index`` leaving every other entry untouched.

    Duplicate keys are allowed; the sequence is never deduplicated.
    """
    _require_custom_fields(config)
    if not 0 <= index < len(config.custom_fields):
        raise NodeConfigError(
            f"Custom field index {index} out of range (0..{len(config.custom_fields) - 1})",
            field="customFields"
        )

    fields = [field.model_copy() for field in config.custom_fields]
    changes = {}
    if key is not None:
        changes["key"] = key
    if value is not None:
        changes["value"] = value
    fields[index] = fields[index].model_copy(update=changes)
    return config.model_copy(update={"custom_fields": fields})


def set_action_param(config: AutomatedConfig, name: str, value: str) -> AutomatedConfig:
    """Set one parameter of the selected automated action."""
    if not isinstance(config, AutomatedConfig):
        raise NodeConfigError(
            f"{type(config).__name__} has no action parameters",
            field="actionParams"
        )
    params = dict(config.action_params)
    params[name] = value
    return config.model_copy(update={"action_params": params})


def derive_label(config: NodeConfig, previous: str) -> str:
    """A non-empty title wins, otherwise the node keeps its label."""
    title = getattr(config, "title", None)
    return title if title else previous


def derive_subtitle(config: NodeConfig) -> str:
    """Assignee first, then approver role, else nothing."""
    assignee = getattr(config, "assignee", None)
    if assignee:
        return assignee
    approver_role = getattr(config, "approver_role", None)
    if approver_role:
        return approver_role.value
    return ""
