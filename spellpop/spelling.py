# -*- coding: utf-8 -*-
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from spellpop.config_paths import get_logger

logger = get_logger(__name__)

MAX_SUGGESTIONS = 5
DEFAULT_LANGUAGE = "en_US"

EMPTY_WORD_MESSAGE = "Please enter a word to check"
MULTIPLE_WORDS_MESSAGE = "Please enter only one word at a time"
LOADING_MESSAGE = "Dictionary is still loading…"


@dataclass
class SpellCheckResult:
    word: str
    is_correct: bool
    suggestions: List[str] = field(default_factory=list)
    error: Optional[str] = None
    loading: bool = False

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "word": self.word,
            "isCorrect": self.is_correct,
            "suggestions": list(self.suggestions),
        }
        if self.error:
            payload["error"] = self.error
        if self.loading:
            payload["loading"] = True
        return payload


@runtime_checkable
class SpellChecker(Protocol):
    """Answers correctness and suggestion queries for single words."""

    def check(self, word: str) -> bool:
        """Return True when the word is spelled correctly."""

    def suggest(self, word: str) -> List[str]:
        """Return replacement candidates, best first."""


class HunspellDictionary:
    """Hunspell affix/dictionary pair loaded through phunspell."""

    def __init__(self, language: str = DEFAULT_LANGUAGE):
        import phunspell

        self.language = language
        self._dictionary = phunspell.Phunspell(language)

    def check(self, word: str) -> bool:
        return bool(self._dictionary.lookup(word))

    def suggest(self, word: str) -> List[str]:
        suggestions: List[str] = []
        for candidate in self._dictionary.suggest(word):
            suggestions.append(candidate)
            if len(suggestions) >= MAX_SUGGESTIONS * 2:
                break
        return suggestions


class EmptyDictionary:
    """Stand-in used when no dictionary could be loaded: nothing is known."""

    def check(self, word: str) -> bool:
        return False

    def suggest(self, word: str) -> List[str]:
        return []


def validate_word(text: str) -> Tuple[str, Optional[str]]:
    """Trim user input and reject empty or multi-word entries."""
    word = (text or "").strip()
    if not word:
        return "", EMPTY_WORD_MESSAGE
    if any(ch.isspace() for ch in word):
        return word, MULTIPLE_WORDS_MESSAGE
    return word, None


def _unique(candidates: List[str], word: str) -> List[str]:
    seen = set()
    result: List[str] = []
    for candidate in candidates:
        if not candidate or candidate == word or candidate in seen:
            continue
        seen.add(candidate)
        result.append(candidate)
        if len(result) >= MAX_SUGGESTIONS:
            break
    return result


class DictionaryService:
    """Loads the dictionary off the UI thread and answers checks once ready."""

    def __init__(self, factory: Callable[[], SpellChecker] = HunspellDictionary):
        self._factory = factory
        self._checker: Optional[SpellChecker] = None
        self._ready = threading.Event()
        self._lock = threading.Lock()
        self._loader: Optional[threading.Thread] = None
        self.degraded = False

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

    def start_loading(self) -> threading.Thread:
        with self._lock:
            if self._loader is not None:
                return self._loader
            self._loader = threading.Thread(target=self.load, name="SpellPopDictionary", daemon=True)
            self._loader.start()
            return self._loader

    def load(self) -> SpellChecker:
        if self._ready.is_set() and self._checker is not None:
            return self._checker
        logger.info("Loading spelling dictionary")
        try:
            checker = self._factory()
        except Exception:
            logger.exception("Spelling dictionary unavailable; falling back to an empty dictionary")
            checker = EmptyDictionary()
            self.degraded = True
        self._checker = checker
        self._ready.set()
        logger.info("Spelling dictionary ready (degraded=%s)", self.degraded)
        return checker

    def check_word(self, word: str) -> SpellCheckResult:
        """Check an already-validated single word."""
        checker = self._checker
        if not self._ready.is_set() or checker is None:
            return SpellCheckResult(word=word, is_correct=False, error=LOADING_MESSAGE, loading=True)

        try:
            if checker.check(word):
                return SpellCheckResult(word=word, is_correct=True)
            suggestions = _unique(list(checker.suggest(word)), word)
        except Exception as exc:
            logger.exception("Dictionary lookup failed for %r", word)
            return SpellCheckResult(word=word, is_correct=False, error=f"Error checking spelling: {exc}")
        return SpellCheckResult(word=word, is_correct=False, suggestions=suggestions)
