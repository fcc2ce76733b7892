"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates run parameters and configuration groups."""

    @staticmethod
    def validate_buy_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate resolver/planner parameters given on the command line."""
        errors = []

        if "dip" in params:
            value = params["dip"]
            if not _is_number(value) or value < 0 or value > 100:
                errors.append(ValidationError(
                    field="dip",
                    message="Must be a percentage between 0 and 100",
                    value=value
                ))

        if "pip" in params:
            value = params["pip"]
            if not _is_number(value) or value <= 0 or value > 100:
                errors.append(ValidationError(
                    field="pip",
                    message="Must be a percentage greater than 0 and at most 100",
                    value=value
                ))

        if "top" in params:
            value = params["top"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                errors.append(ValidationError(
                    field="top",
                    message="Must be a positive integer",
                    value=value
                ))

        if "dist" in params:
            value = params["dist"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="dist",
                    message="Must be a non-negative percentage",
                    value=value
                ))

        for name in ("mult", "devn"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value <= 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a positive multiplier",
                        value=value
                    ))

        for name in ("size", "price", "max", "min", "volume"):
            if name in params and params[name] is not None:
                value = params[name]
                if not _is_number(value) or value < 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a non-negative number",
                        value=value
                    ))

        if params.get("size") and params.get("price"):
            errors.append(ValidationError(
                field="size",
                message="size and price are mutually exclusive",
                value=(params["size"], params["price"])
            ))

        if params.get("max") and params.get("min") and params["min"] >= params["max"]:
            errors.append(ValidationError(
                field="min",
                message="Must be lower than max",
                value=params["min"]
            ))

        return errors

    @staticmethod
    def validate_sell_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate sell strategy engine parameters."""
        errors = []

        if "strategy" in params:
            value = params["strategy"]
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 4:
                errors.append(ValidationError(
                    field="strategy",
                    message="Must be an integer between 0 and 4",
                    value=value
                ))

        if "default_mult" in params:
            value = params["default_mult"]
            if not _is_number(value) or value <= 1:
                errors.append(ValidationError(
                    field="default_mult",
                    message="Must be greater than 1",
                    value=value
                ))

        if "default_stop" in params:
            value = params["default_stop"]
            if not _is_number(value) or value <= 0 or value >= 1:
                errors.append(ValidationError(
                    field="default_stop",
                    message="Must be between 0 and 1 (exclusive)",
                    value=value
                ))

        if "poll_interval_seconds" in params:
            value = params["poll_interval_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="poll_interval_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        if "dca_rebuy_mult" in params:
            value = params["dca_rebuy_mult"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="dca_rebuy_mult",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_aggregation_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate support search parameters."""
        errors = []

        if "start_agg" in params:
            value = params["start_agg"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="start_agg",
                    message="Must be a positive number",
                    value=value
                ))

        if "ladder" in params:
            value = params["ladder"]
            if not value or not all(_is_number(v) and 0 < v < 1 for v in value):
                errors.append(ValidationError(
                    field="ladder",
                    message="Must be a non-empty list of ratios between 0 and 1",
                    value=value
                ))

        if "lowest_count" in params:
            value = params["lowest_count"]
            if not isinstance(value, int) or value < 1:
                errors.append(ValidationError(
                    field="lowest_count",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_governor_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate request pacing parameters."""
        errors = []

        for name in ("socket_timeout_seconds", "cooldown_seconds",
                     "transient_retry_delay_seconds"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value < 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a non-negative number",
                        value=value
                    ))

        if "transient_retry_attempts" in params:
            value = params["transient_retry_attempts"]
            if not isinstance(value, int) or value < 0:
                errors.append(ValidationError(
                    field="transient_retry_attempts",
                    message="Must be a non-negative integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate a complete merged configuration."""
        errors = []

        if "aggregation" in config:
            errors.extend(ConfigValidator.validate_aggregation_params(config["aggregation"]))

        if "sell" in config:
            errors.extend(ConfigValidator.validate_sell_params(config["sell"]))

        if "governor" in config:
            errors.extend(ConfigValidator.validate_governor_params(config["governor"]))

        if "notify" in config:
            level = config["notify"].get("level")
            if level is not None and level not in (0, 1, 2, 3):
                errors.append(ValidationError(
                    field="level",
                    message="Must be one of 0, 1, 2, 3",
                    value=level
                ))

        return errors
