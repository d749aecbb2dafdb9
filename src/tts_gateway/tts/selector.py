"""
Backend Selection by Voice Identifier.

Rules are evaluated in priority order; the first match wins:

    1. voice contains "sambert"                   -> sambert
    2. voice is one of Chelsie/Cherry/Ethan/Serena -> qwen   (exact, case-sensitive)
    3. anything else                               -> cosyvoice

Selection is a pure function of the voice identifier and never fails:
unknown, empty or malformed identifiers fall through to the default.
Extra rules are added with BackendSelector.register().
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from tts_gateway.tts.backend import BackendKind

SAMBERT_MARKER = "sambert"
QWEN_VOICES = frozenset({"Chelsie", "Cherry", "Ethan", "Serena"})

VoicePredicate = Callable[[str], bool]


@dataclass(frozen=True)
class SelectionRule:
    name: str
    predicate: VoicePredicate
    kind: BackendKind | str


def is_sambert_voice(voice: str) -> bool:
    return SAMBERT_MARKER in voice


def is_qwen_voice(voice: str) -> bool:
    return voice in QWEN_VOICES


DEFAULT_RULES: Tuple[SelectionRule, ...] = (
    SelectionRule("sambert-marker", is_sambert_voice, BackendKind.SAMBERT),
    SelectionRule("qwen-voice", is_qwen_voice, BackendKind.QWEN),
)


class BackendSelector:
    """
    Ordered voice -> backend rules with a fallback.

    Args:
        rules: Rules in priority order; defaults to DEFAULT_RULES.
        default: Backend used when no rule matches.
    """

    def __init__(
        self,
        rules: Optional[Sequence[SelectionRule]] = None,
        default: BackendKind | str = BackendKind.COSYVOICE,
    ):
        self._rules: List[SelectionRule] = list(DEFAULT_RULES if rules is None else rules)
        self._default = default

    @property
    def rules(self) -> Tuple[SelectionRule, ...]:
        return tuple(self._rules)

    @property
    def default(self) -> BackendKind | str:
        return self._default

    def register(
        self,
        predicate: VoicePredicate,
        kind: BackendKind | str,
        name: Optional[str] = None,
        first: bool = False,
    ) -> None:
        """
        Add a rule.

        Args:
            predicate: ``predicate(voice) -> bool``.
            kind: Backend selected when the predicate matches.
            name: Rule name reported by explain().
            first: Evaluate before the existing rules instead of after.
        """
        rule = SelectionRule(name or getattr(predicate, "__name__", "custom"), predicate, kind)
        if first:
            self._rules.insert(0, rule)
        else:
            self._rules.append(rule)

    def explain(self, voice: Optional[str]) -> Tuple[BackendKind | str, str]:
        """Return (backend, matched rule name); the rule is "default" on fallback."""
        if isinstance(voice, str):
            for rule in self._rules:
                if rule.predicate(voice):
                    return rule.kind, rule.name
        return self._default, "default"

    def select(self, voice: Optional[str]) -> BackendKind | str:
        return self.explain(voice)[0]


def default_selector() -> BackendSelector:
    """A fresh selector with the built-in rules."""
    return BackendSelector()


def select_backend(voice: Optional[str]) -> BackendKind | str:
    """Select a backend using the built-in rules."""
    return BackendSelector().select(voice)
