# ===== app/services/availability/rule_validator.py =====
from collections import defaultdict
from typing import List, Sequence

from app.core.exceptions import ValidationError
from app.services.availability.intervals import find_overlap


MINUTES_PER_DAY = 1440


def _format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def rule_group_key(rule):
    """(kind, day) bucket a rule belongs to: a weekday or a specific date"""
    if rule.rule_type == "date":
        return "date", rule.specific_date
    return "weekly", rule.day_of_week


class AvailabilityRuleValidator:
    """Rejects rule sets that are malformed or contradict themselves"""

    @staticmethod
    def validate(rules: Sequence) -> None:
        """
        Validate a full replacement set of availability rules.

        Works on anything exposing ``rule_type``, ``day_of_week``,
        ``specific_date``, ``start_minutes``, ``end_minutes`` and
        ``is_unavailable`` (request schemas and ORM rows alike).

        Raises:
            ValidationError: on the first problem found
        """
        for rule in rules:
            AvailabilityRuleValidator._validate_rule(rule)

        groups = defaultdict(list)
        for rule in rules:
            groups[(rule_group_key(rule), bool(rule.is_unavailable))].append(
                (rule.start_minutes, rule.end_minutes)
            )

        for ((kind, day), unavailable), intervals in groups.items():
            clash = find_overlap(intervals)
            if clash:
                first, second = clash
                label = "unavailable" if unavailable else "available"
                target = f"day {day}" if kind == "weekly" else str(day)
                raise ValidationError(
                    f"Overlapping {label} rules on {target}: "
                    f"{_format_minutes(first[0])}-{_format_minutes(first[1])} and "
                    f"{_format_minutes(second[0])}-{_format_minutes(second[1])}",
                    code="overlapping_rules"
                )

    @staticmethod
    def _validate_rule(rule) -> None:
        if rule.rule_type == "weekly":
            if rule.day_of_week is None or rule.day_of_week < 0 or rule.day_of_week > 6:
                raise ValidationError("Weekly rules require a valid dayOfWeek (0-6)", code="invalid_rule")
            if rule.specific_date:
                raise ValidationError("Weekly rules cannot include specificDate", code="invalid_rule")
        elif rule.rule_type == "date":
            if not rule.specific_date:
                raise ValidationError("Date rules require a specificDate value", code="invalid_rule")
        else:
            raise ValidationError(f"Unknown rule type: {rule.rule_type}", code="invalid_rule")

        if rule.start_minutes is None or rule.start_minutes < 0 or rule.start_minutes >= MINUTES_PER_DAY:
            raise ValidationError("startMinutes must be between 0 and 1439", code="invalid_rule")

        if rule.end_minutes is None or rule.end_minutes <= 0 or rule.end_minutes > MINUTES_PER_DAY:
            raise ValidationError("endMinutes must be between 1 and 1440", code="invalid_rule")

        if rule.end_minutes <= rule.start_minutes:
            raise ValidationError("endMinutes must be greater than startMinutes", code="invalid_rule")

    @staticmethod
    def normalize(rules: Sequence) -> List:
        """
        Canonical order: date rules first (by date), then weekly rules
        (by weekday), each ordered by start minute.
        """
        def sort_key(rule):
            if rule.rule_type == "date":
                return 0, rule.specific_date.toordinal(), rule.start_minutes, rule.end_minutes
            return 1, rule.day_of_week, rule.start_minutes, rule.end_minutes

        return sorted(rules, key=sort_key)
