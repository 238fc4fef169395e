from typing import Any, Callable, Iterable, List, NamedTuple

from common.errors import Violation


class Rule(NamedTuple):
    field: str
    check: Callable[[Any], bool]
    message: str


def run_rules(record: dict, rules: Iterable[Rule]) -> List[Violation]:
    """Evaluate rules in order and collect at most one violation per field."""
    violations = []
    failed = set()
    for rule in rules:
        if rule.field in failed:
            continue
        if not rule.check(record.get(rule.field)):
            failed.add(rule.field)
            violations.append(Violation(rule.field, rule.message))
    return violations


def required(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def max_length(limit: int) -> Callable[[Any], bool]:
    def check(value: Any) -> bool:
        return value is None or len(value) <= limit

    return check


def one_of(values: Iterable[str]) -> Callable[[Any], bool]:
    allowed = set(values)

    def check(value: Any) -> bool:
        return isinstance(value, str) and value in allowed

    return check


def is_string(value: Any) -> bool:
    return value is None or isinstance(value, str)


def non_empty_list(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0


def string_items(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(
        isinstance(item, str) for item in value
    )
