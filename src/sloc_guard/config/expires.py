from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sloc_guard.config.model import Config


@dataclass(frozen=True)
class ExpiredRule:
    rule_type: str
    index: int
    pattern: str
    expires: date
    reason: str | None

    def describe(self) -> str:
        text = (
            f"{self.rule_type}.rules[{self.index}] '{self.pattern}' "
            f"expired on {self.expires.isoformat()}"
        )
        if self.reason:
            text = f"{text} ({self.reason})"
        return text


def collect_expired_rules(config: Config, *, today: date | None = None) -> list[ExpiredRule]:
    """Rules whose ``expires`` date is strictly before ``today``; they still apply."""
    today = today or date.today()
    expired: list[ExpiredRule] = []
    for index, rule in enumerate(config.content.rules):
        if rule.expires is not None and rule.expires < today:
            expired.append(ExpiredRule("content", index, rule.pattern, rule.expires, rule.reason))
    for index, rule in enumerate(config.structure.rules):
        if rule.expires is not None and rule.expires < today:
            expired.append(ExpiredRule("structure", index, rule.scope, rule.expires, rule.reason))
    return expired
