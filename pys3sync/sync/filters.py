"""Wildcard scope rules for selecting which paths take part in a sync."""

from dataclasses import dataclass
from typing import Iterable

from ..exceptions import ConfigurationError
from ..utils import WILDCARD, to_slash


def split_wildcard(expression: str) -> tuple[str, str]:
    """Split a path expression on its wildcard.

    Args:
        expression: Path expression with at most one ``*``

    Returns:
        ``(prefix, postfix)``; ``(expression, "")`` when there is no wildcard

    Raises:
        ConfigurationError: If the expression contains more than one ``*``

    Examples:
        >>> split_wildcard("data/*.json")
        ('data/', '.json')
        >>> split_wildcard("data/")
        ('data/', '')
    """
    parts = expression.split(WILDCARD)
    if len(parts) > 2:
        raise ConfigurationError(
            f"Paths can't contain more than one wildcard '{WILDCARD}': {expression}"
        )
    if len(parts) == 2:
        return parts[0], parts[1]
    return expression, ""


@dataclass(frozen=True)
class ScopeRule:
    """Literal prefix/postfix matcher.

    A path matches when, with separators normalized to ``/``, it starts
    with ``prefix`` and ends with ``postfix``.
    """

    prefix: str = ""
    postfix: str = ""

    @classmethod
    def postfix_rule(cls, postfix: str) -> "ScopeRule":
        return cls(postfix=to_slash(postfix))

    @classmethod
    def prefix_rule(cls, prefix: str) -> "ScopeRule":
        return cls(prefix=to_slash(prefix))

    @classmethod
    def from_expression(cls, expression: str) -> "ScopeRule":
        """Compile a wildcard expression into a rule."""
        prefix, postfix = split_wildcard(expression)
        return cls(prefix=to_slash(prefix), postfix=to_slash(postfix))

    def matches(self, path: str) -> bool:
        normalized = to_slash(path)
        return normalized.startswith(self.prefix) and normalized.endswith(
            self.postfix
        )


@dataclass(frozen=True)
class RuleSet:
    """Ordered, immutable collection of scope rules combined with AND."""

    rules: tuple[ScopeRule, ...] = ()

    @classmethod
    def of(cls, rules: Iterable[ScopeRule]) -> "RuleSet":
        return cls(rules=tuple(rules))

    def matches(self, path: str) -> bool:
        """Check a path against every rule (an empty set matches all)."""
        return all(rule.matches(path) for rule in self.rules)

    def with_rule(self, rule: ScopeRule) -> "RuleSet":
        """Return a new set with ``rule`` appended."""
        return RuleSet(rules=self.rules + (rule,))

    def __len__(self) -> int:
        return len(self.rules)
