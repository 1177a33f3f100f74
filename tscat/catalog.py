#!/usr/bin/env python3
"""
In-memory translation catalog.

A Catalog holds an ordered sequence of Contexts; each Context holds an
ordered mapping of MessageKey -> Message. The key is the pair
(source_text, disambiguation); there are no synthetic ids, so nothing
depends on message positions staying stable across merges.

Catalog structure:
```
Catalog(language="pt_BR", source_language="en")
    Context "Call"
        Message("New")            -> "Novo"       finished
        Message("Busy")           -> "Ocupado"    obsolete
        Message("%n call(s)", is_plural=True) -> ["%n chamada", "%n chamadas"]
```
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, NamedTuple, Optional

from .errors import DuplicateKey


class Status(str, Enum):
    """Lifecycle state of a message."""
    UNFINISHED = "unfinished"
    FINISHED = "finished"
    OBSOLETE = "obsolete"
    VANISHED = "vanished"

    @property
    def is_active(self) -> bool:
        """True while the message is still present in source."""
        return self in (Status.UNFINISHED, Status.FINISHED)


class Location(NamedTuple):
    """Source location hint. Informational only, never part of identity."""
    filename: str
    line: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}"


class MessageKey(NamedTuple):
    """Identity of a message within its context."""
    source_text: str
    disambiguation: str = ""

    @classmethod
    def of(cls, source_text: str, disambiguation: Optional[str] = None) -> "MessageKey":
        """Build a key, treating a missing disambiguation as the empty one."""
        return cls(source_text, disambiguation or "")


@dataclass
class Message:
    """
    Single translatable message.

    Attributes:
        source_text: Text as written in source code
        disambiguation: Optional secondary key for identical source texts
        translation: Translated text (non-plural messages)
        status: Lifecycle state
        locations: (filename, line) pairs where the text was found
        plural_forms: Translation variants indexed by plural category (plural messages)
        is_plural: Whether the message is selected by a quantity
        extra_comment: Developer note for the translator
        translator_comment: Translator's own note
    """
    source_text: str
    disambiguation: Optional[str] = None
    translation: str = ""
    status: Status = Status.UNFINISHED
    locations: list[Location] = field(default_factory=list)
    plural_forms: list[str] = field(default_factory=list)
    is_plural: bool = False
    extra_comment: Optional[str] = None
    translator_comment: Optional[str] = None

    def __post_init__(self):
        """Normalize disambiguation, status and location types."""
        self.disambiguation = self.disambiguation or None
        self.status = Status(self.status)
        self.locations = [Location(str(f), int(l)) for f, l in self.locations]
        self.plural_forms = list(self.plural_forms)

    @property
    def key(self) -> MessageKey:
        return MessageKey.of(self.source_text, self.disambiguation)

    def is_translated(self) -> bool:
        """Whether any translation text is present."""
        if self.is_plural:
            return any(self.plural_forms)
        return bool(self.translation)

    def is_complete(self, nplurals: Optional[int] = None) -> bool:
        """
        Whether every required translation slot is filled.

        Args:
            nplurals: Number of plural slots the target language needs.
                Defaults to the number of slots the message already has.
        """
        if not self.is_plural:
            return bool(self.translation)
        required = nplurals if nplurals is not None else len(self.plural_forms)
        if required < 1 or len(self.plural_forms) < required:
            return False
        return all(self.plural_forms[:required])

    def validate(self, nplurals: Optional[int] = None) -> None:
        """Raise ValueError if the message breaks a catalog invariant."""
        if not self.source_text:
            raise ValueError("Message source text must not be empty")
        for loc in self.locations:
            if not loc.filename or loc.line < 1:
                raise ValueError(f"Invalid location for '{self.source_text}': {loc.filename}:{loc.line}")
        if self.status is Status.FINISHED and not self.is_complete(nplurals):
            raise ValueError(f"Finished message '{self.source_text}' has missing translation text")

    def set_translation(self, text: Optional[str] = None, plural_forms: Optional[list[str]] = None) -> None:
        """Translator edit. Leaves the message unfinished until marked finished."""
        if plural_forms is not None:
            self.plural_forms = list(plural_forms)
        if text is not None:
            self.translation = text
        if self.status is Status.FINISHED and not self.is_complete():
            self.status = Status.UNFINISHED

    def mark_finished(self, nplurals: Optional[int] = None) -> None:
        """Translator approval of the current translation."""
        if not self.is_complete(nplurals):
            raise ValueError(f"Cannot finish '{self.source_text}': translation is incomplete")
        self.status = Status.FINISHED

    def copy(self) -> "Message":
        return copy.deepcopy(self)


class Context:
    """Named, insertion-ordered group of messages."""

    def __init__(self, name: str, messages: Optional[list[Message]] = None):
        self.name = name
        self._messages: dict[MessageKey, Message] = {}
        for message in messages or []:
            self.upsert(message)

    def get(self, key: MessageKey) -> Optional[Message]:
        return self._messages.get(key)

    def find(self, source_text: str, disambiguation: Optional[str] = None) -> Optional[Message]:
        return self._messages.get(MessageKey.of(source_text, disambiguation))

    def upsert(self, message: Message) -> Message:
        """
        Insert message under its identity key.

        Re-inserting the same object keeps its position. A different object
        with the same key raises DuplicateKey.
        """
        key = message.key
        existing = self._messages.get(key)
        if existing is not None and existing is not message:
            raise DuplicateKey(
                f"Context '{self.name}' already has a message for "
                f"'{key.source_text}'" + (f" ({key.disambiguation})" if key.disambiguation else "")
            )
        self._messages[key] = message
        return message

    def remove(self, key: MessageKey) -> Optional[Message]:
        return self._messages.pop(key, None)

    def messages(self) -> list[Message]:
        return list(self._messages.values())

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages.values()))

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, key: MessageKey) -> bool:
        return key in self._messages

    def __eq__(self, other) -> bool:
        if not isinstance(other, Context):
            return NotImplemented
        return self.name == other.name and self.messages() == other.messages()

    def __repr__(self) -> str:
        return f"Context({self.name!r}, {len(self)} messages)"


class Catalog:
    """
    Ordered set of contexts for one target language.

    The whole catalog is the unit of persistence and of runtime replacement.
    """

    def __init__(
        self,
        language: str = "",
        source_language: str = "en",
        contexts: Optional[list[Context]] = None,
    ):
        self.language = language
        self.source_language = source_language
        self._contexts: dict[str, Context] = {}
        for ctx in contexts or []:
            if ctx.name in self._contexts:
                raise DuplicateKey(f"Duplicate context: {ctx.name}")
            self._contexts[ctx.name] = ctx

    def find(
        self,
        context: str,
        source_text: str,
        disambiguation: Optional[str] = None,
    ) -> Optional[Message]:
        """Find a message by (context, source_text, disambiguation)."""
        ctx = self._contexts.get(context)
        if ctx is None:
            return None
        return ctx.find(source_text, disambiguation)

    def upsert(self, context: str, message: Message) -> Message:
        """Insert a message, creating the context at the end if needed."""
        ctx = self._contexts.get(context)
        if ctx is None:
            ctx = Context(context)
            ctx.upsert(message)
            self._contexts[context] = ctx
            return message
        return ctx.upsert(message)

    def ensure_context(self, name: str) -> Context:
        """Return the named context, appending an empty one if missing."""
        if name not in self._contexts:
            self._contexts[name] = Context(name)
        return self._contexts[name]

    def context(self, name: str) -> Optional[Context]:
        return self._contexts.get(name)

    def contexts(self) -> list[Context]:
        return list(self._contexts.values())

    def remove(self, context: str, key: MessageKey) -> Optional[Message]:
        ctx = self._contexts.get(context)
        if ctx is None:
            return None
        return ctx.remove(key)

    def messages(self) -> Iterator[tuple[str, Message]]:
        """Iterate (context_name, message) pairs in catalog order."""
        for ctx in self.contexts():
            for message in ctx:
                yield ctx.name, message

    def drop_empty_contexts(self) -> int:
        """Remove contexts without messages. Returns the number removed."""
        empty = [name for name, ctx in self._contexts.items() if not len(ctx)]
        for name in empty:
            del self._contexts[name]
        return len(empty)

    def copy(self) -> "Catalog":
        """Deep copy, safe to mutate without affecting this catalog."""
        return copy.deepcopy(self)

    def stats(self) -> dict[str, int]:
        """Message counts per status."""
        counts = {status.value: 0 for status in Status}
        total = 0
        for _, message in self.messages():
            counts[message.status.value] += 1
            total += 1
        return {
            "contexts": len(self._contexts),
            "messages": total,
            **counts,
        }

    def __len__(self) -> int:
        return sum(len(ctx) for ctx in self._contexts.values())

    def __eq__(self, other) -> bool:
        if not isinstance(other, Catalog):
            return NotImplemented
        return (
            self.language == other.language
            and self.source_language == other.source_language
            and self.contexts() == other.contexts()
        )

    def __repr__(self) -> str:
        return f"Catalog(language={self.language!r}, {len(self._contexts)} contexts, {len(self)} messages)"
