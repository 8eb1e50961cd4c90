"""Terraform plan parser.

Decodes a serialized plan (raw or base64 JSON), validates its structure and
builds an immutable Plan. Binary plan files are rejected: they need
``terraform show -json`` to be converted first.
"""

import base64
import binascii
import copy
import json
from typing import Any

from planauditor.errors import ParseError, ValidationError
from planauditor.utils.constants import PLAN_FORMATS, VALID_ACTIONS
from planauditor.utils.logging import logger

from . import queries
from .models import Change, Plan, ResourceChange

# Tags accepted as the plan's tool version, first match wins.
VERSION_KEYS = ("terraform_version", "opentofu_version")


class PlanParser:
    """Stateless plan parser. Safe to share between concurrent runs."""

    def parse(self, raw_plan_data: str | bytes, plan_format: str = "json", log=None) -> Plan:
        """Parse and validate a serialized plan.

        Raises:
            ParseError: undecodable input or unsupported/binary format
            ValidationError: structurally invalid plan, ``field`` names the culprit
        """
        log = log or logger
        size = len(raw_plan_data) if raw_plan_data is not None else 0
        log.info(f"Parsing plan (format={plan_format}, {size} bytes)")

        if plan_format == "json":
            document = self._decode_json(raw_plan_data)
        elif plan_format == "binary":
            log.warning("Binary plan format requested")
            raise ParseError(
                "Binary plan format requires external conversion to JSON "
                "(run 'terraform show -json <planfile>')"
            )
        else:
            raise ParseError(
                f"Unsupported plan format: {plan_format} (expected one of: {', '.join(PLAN_FORMATS)})"
            )

        self.validate_structure(document)
        plan = self._build_plan(document)

        log.info(
            f"Plan parsed: terraform {plan.terraform_version}, "
            f"{plan.resource_count} resource changes, {len(plan.output_changes)} output changes"
        )
        return plan

    def _decode_json(self, raw_plan_data: str | bytes) -> dict[str, Any]:
        if raw_plan_data is None or (isinstance(raw_plan_data, (str, bytes)) and not raw_plan_data.strip()):
            raise ParseError("Failed to parse JSON plan: empty input")

        try:
            text = _try_base64(raw_plan_data)
            if text is None:
                text = raw_plan_data.decode("utf-8") if isinstance(raw_plan_data, bytes) else raw_plan_data
            document = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ParseError(f"Failed to parse JSON plan: {e}") from e

        if not isinstance(document, dict):
            raise ParseError(f"Failed to parse JSON plan: expected an object, got {type(document).__name__}")

        return document

    def validate_structure(self, document: dict[str, Any]) -> None:
        """Check the fields every analysis relies on.

        Raises ValidationError naming the first missing or invalid field.
        """
        if not document.get("format_version"):
            raise ValidationError("Invalid plan: missing format_version", field="format_version")

        if not any(document.get(key) for key in VERSION_KEYS):
            raise ValidationError("Invalid plan: missing terraform_version", field="terraform_version")

        if "resource_changes" not in document or document["resource_changes"] is None:
            raise ValidationError("Invalid plan: missing resource_changes", field="resource_changes")

        if not isinstance(document["resource_changes"], list):
            raise ValidationError(
                "Invalid plan: resource_changes must be an array", field="resource_changes"
            )

        for index, change in enumerate(document["resource_changes"]):
            prefix = f"resource_changes[{index}]"
            if not isinstance(change, dict):
                raise ValidationError(f"Invalid plan: {prefix} must be an object", field=prefix)

            for key in ("address", "type", "name"):
                if not change.get(key):
                    raise ValidationError(f"Invalid plan: {prefix} missing {key}", field=f"{prefix}.{key}")

            payload = change.get("change")
            if not isinstance(payload, dict):
                raise ValidationError(f"Invalid plan: {prefix} missing change", field=f"{prefix}.change")

            actions = payload.get("actions")
            if not isinstance(actions, list) or not actions:
                raise ValidationError(
                    f"Invalid plan: {prefix} missing or invalid actions",
                    field=f"{prefix}.change.actions",
                )

            unknown = [a for a in actions if a not in VALID_ACTIONS]
            if unknown:
                raise ValidationError(
                    f"Invalid plan: {prefix} has unsupported actions {unknown}",
                    field=f"{prefix}.change.actions",
                )

    def _build_plan(self, document: dict[str, Any]) -> Plan:
        changes = tuple(_build_resource_change(raw) for raw in document["resource_changes"])

        configuration = document.get("configuration") or {}
        provider_config = configuration.get("provider_config") or {}
        module_calls = (configuration.get("root_module") or {}).get("module_calls") or {}

        version = next(document[key] for key in VERSION_KEYS if document.get(key))

        return Plan(
            format_version=str(document["format_version"]),
            terraform_version=str(version),
            resource_changes=changes,
            variables=copy.deepcopy(document.get("variables") or {}),
            output_changes=copy.deepcopy(document.get("output_changes") or {}),
            provider_configs=tuple(sorted(provider_config)),
            module_calls=tuple(sorted(module_calls)),
        )

    # Query helpers, kept on the parser for callers that hold one.
    extract_resource_types = staticmethod(queries.extract_resource_types)
    extract_providers = staticmethod(queries.extract_providers)
    extract_modules = staticmethod(queries.extract_modules)
    get_resources_by_type = staticmethod(queries.get_resources_by_type)
    get_resources_by_action = staticmethod(queries.get_resources_by_action)
    get_resources_by_provider = staticmethod(queries.get_resources_by_provider)
    get_resources_by_module = staticmethod(queries.get_resources_by_module)
    extract_configuration_values = staticmethod(queries.extract_configuration_values)
    extract_sensitive_values = staticmethod(queries.extract_sensitive_values)
    get_plan_summary = staticmethod(queries.get_plan_summary)
    has_destructive_changes = staticmethod(queries.has_destructive_changes)
    has_sensitive_changes = staticmethod(queries.has_sensitive_changes)
    get_plan_complexity_score = staticmethod(queries.get_plan_complexity_score)


def _try_base64(raw: str | bytes) -> str | None:
    """Strictly decode base64 text, or None when the input is not base64."""
    try:
        compact = "".join(raw.split()) if isinstance(raw, str) else b"".join(raw.split())
        return base64.b64decode(compact, validate=True).decode("utf-8")
    except (binascii.Error, ValueError, UnicodeDecodeError):
        return None


def _build_resource_change(raw: dict[str, Any]) -> ResourceChange:
    payload = raw["change"]
    return ResourceChange(
        address=raw["address"],
        type=raw["type"],
        name=raw["name"],
        provider_name=raw.get("provider_name") or "",
        mode=raw.get("mode") or "managed",
        module_address=raw.get("module_address"),
        index=raw.get("index"),
        change=Change(
            actions=tuple(payload["actions"]),
            before=copy.deepcopy(payload.get("before")),
            after=copy.deepcopy(payload.get("after")),
            after_unknown=copy.deepcopy(payload.get("after_unknown")),
            before_sensitive=copy.deepcopy(payload.get("before_sensitive")),
            after_sensitive=copy.deepcopy(payload.get("after_sensitive")),
        ),
    )
