#!/usr/bin/env python3
"""
Catalog reconciliation.

Merges the scanner's extraction list into an existing catalog without losing
translator work. Matching is by exact identity key only: a source text that
changed by a single character is a removal plus an addition.

Per extracted message (looked up by context + key):
    matched, translated, active     -> locations refreshed, status kept
                                       (Finished is never granted here,
                                        only taken away)
    matched, untranslated/retired   -> reactivated as Unfinished
    not matched                     -> new Unfinished message

Per existing message not extracted:
    Finished/Unfinished -> Obsolete
    Obsolete            -> Vanished
    Vanished            -> kept, or removed when pruning

The old catalog is never modified; a new Catalog value is returned.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, NamedTuple, Optional

from .catalog import Catalog, Message, MessageKey, Status
from .errors import CatalogError, DuplicateExtraction, InvalidSource
from .extraction import ExtractedMessage
from .plurals import PluralRules, default_rules

logger = logging.getLogger(__name__)


@dataclass
class MergeIssue:
    """Recoverable problem with one extraction record."""
    index: int
    error_type: str
    message: str
    context: Optional[str] = None
    source_text: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "type": self.error_type,
            "message": self.message,
            "context": self.context,
            "source": self.source_text,
        }


@dataclass
class MergeReport:
    """Counters and issues from one reconciliation pass."""
    found: int = 0
    new: int = 0
    existing: int = 0
    reactivated: int = 0
    obsoleted: int = 0
    vanished: int = 0
    pruned: int = 0
    issues: list[MergeIssue] = field(default_factory=list)

    def summary(self) -> str:
        parts = [f"Found {self.found} source text(s) ({self.new} new and {self.existing} already existing)"]
        if self.reactivated:
            parts.append(f"reactivated {self.reactivated}")
        if self.obsoleted or self.vanished:
            parts.append(f"{self.obsoleted} became obsolete, {self.vanished} vanished")
        if self.pruned:
            parts.append(f"removed {self.pruned} vanished entries")
        if self.issues:
            parts.append(f"{len(self.issues)} extraction issue(s)")
        return "; ".join(parts) + "."

    def to_dict(self) -> dict:
        data = asdict(self)
        data["issues"] = [issue.to_dict() for issue in self.issues]
        return data


class MergeResult(NamedTuple):
    catalog: Catalog
    report: MergeReport


class Reconciler:
    """
    Merges extraction lists into catalogs.

    Args:
        plural_rules: Plural table used to check plural completeness (bundled table by default)
        prune: Remove messages that were already Vanished and are still missing
        strict: Raise the first InvalidSource/DuplicateExtraction instead of recording it
    """

    def __init__(
        self,
        plural_rules: Optional[PluralRules] = None,
        prune: bool = False,
        strict: bool = False,
    ):
        self.plural_rules = plural_rules or default_rules()
        self.prune = prune
        self.strict = strict

    def reconcile(self, old_catalog: Optional[Catalog], extraction: Iterable[Any]) -> MergeResult:
        """
        Merge extraction into old_catalog.

        Args:
            old_catalog: Existing catalog (None or empty for a first run)
            extraction: Ordered extraction records (see tscat.extraction)

        Returns:
            MergeResult with the new catalog and a report
        """
        old_catalog = old_catalog if old_catalog is not None else Catalog()
        report = MergeReport()
        nplurals = self.plural_rules.nplurals(old_catalog.language) if old_catalog.language else None

        accepted = self._collect(extraction, report)
        report.found = len(accepted)

        by_context: dict[str, list[ExtractedMessage]] = {}
        for ext in accepted.values():
            by_context.setdefault(ext.context, []).append(ext)

        result = Catalog(language=old_catalog.language, source_language=old_catalog.source_language)

        for ctx in old_catalog.contexts():
            for message in ctx:
                ext = accepted.get((ctx.name, message.key))
                if ext is not None:
                    merged = self._merge_existing(message, ext, nplurals, report)
                else:
                    merged = self._retire(ctx.name, message, report)
                if merged is not None:
                    result.upsert(ctx.name, merged)

            for ext in by_context.pop(ctx.name, []):
                if ext.key not in ctx:
                    result.upsert(ctx.name, self._create(ext, report))

        for context_name, extracted in by_context.items():
            for ext in extracted:
                result.upsert(context_name, self._create(ext, report))

        logger.info(report.summary())
        return MergeResult(result, report)

    def _collect(self, extraction: Iterable[Any], report: MergeReport) -> dict[tuple[str, MessageKey], ExtractedMessage]:
        """Validate records and fold duplicates, keeping first-seen order."""
        accepted: dict[tuple[str, MessageKey], ExtractedMessage] = {}

        for index, record in enumerate(extraction):
            try:
                ext = _coerce(record)
            except InvalidSource as e:
                self._record_issue(report, e, MergeIssue(
                    index=index,
                    error_type="InvalidSource",
                    message=str(e),
                    context=_field(record, 0, "context"),
                    source_text=_field(record, 1, "source_text"),
                ))
                continue

            slot = (ext.context, ext.key)
            first = accepted.get(slot)
            if first is None:
                accepted[slot] = ext
                continue

            extra = tuple(loc for loc in ext.locations if loc not in first.locations)
            accepted[slot] = first._replace(locations=first.locations + extra)
            message = f"Duplicate extraction of '{ext.source_text}' in context '{ext.context}'"
            self._record_issue(report, DuplicateExtraction(message), MergeIssue(
                index=index,
                error_type="DuplicateExtraction",
                message=message,
                context=ext.context,
                source_text=ext.source_text,
            ))

        return accepted

    def _record_issue(self, report: MergeReport, error: CatalogError, issue: MergeIssue) -> None:
        if self.strict:
            raise error
        logger.warning("Extraction record %d: %s", issue.index, issue.message)
        report.issues.append(issue)

    def _merge_existing(
        self,
        old: Message,
        ext: ExtractedMessage,
        nplurals: Optional[int],
        report: MergeReport,
    ) -> Message:
        message = old.copy()
        message.locations = list(ext.locations)
        report.existing += 1

        kind_changed = message.is_plural != ext.is_plural
        if kind_changed:
            _convert_kind(message, ext.is_plural)

        if not old.status.is_active:
            report.reactivated += 1
            message.status = Status.UNFINISHED
        elif not message.is_translated() or kind_changed:
            message.status = Status.UNFINISHED
        elif message.status is Status.FINISHED and not message.is_complete(nplurals):
            logger.debug("Plural slots incomplete for '%s', marking unfinished", message.source_text)
            message.status = Status.UNFINISHED

        return message

    def _retire(self, context: str, old: Message, report: MergeReport) -> Optional[Message]:
        if old.status is Status.VANISHED:
            if self.prune:
                logger.debug("Pruning vanished message '%s' from context '%s'", old.source_text, context)
                report.pruned += 1
                return None
            return old.copy()

        message = old.copy()
        if old.status is Status.OBSOLETE:
            message.status = Status.VANISHED
            report.vanished += 1
        else:
            message.status = Status.OBSOLETE
            report.obsoleted += 1
        return message

    def _create(self, ext: ExtractedMessage, report: MergeReport) -> Message:
        report.new += 1
        return Message(
            source_text=ext.source_text,
            disambiguation=ext.disambiguation,
            locations=list(ext.locations),
            is_plural=ext.is_plural,
            status=Status.UNFINISHED,
        )


def _convert_kind(message: Message, to_plural: bool) -> None:
    """Switch a message between single and plural translation storage."""
    if to_plural:
        message.plural_forms = [message.translation] if message.translation else []
        message.translation = ""
    else:
        message.translation = message.plural_forms[0] if message.plural_forms else ""
        message.plural_forms = []
    message.is_plural = to_plural


def _coerce(record: Any) -> ExtractedMessage:
    """ExtractedMessage.coerce, with any unexpected failure reported as InvalidSource."""
    try:
        return ExtractedMessage.coerce(record)
    except CatalogError:
        raise
    except Exception as e:
        raise InvalidSource(f"Unreadable record: {type(e).__name__}: {e}") from e


def _field(record: Any, position: int, name: str) -> Optional[str]:
    """Best-effort field access on a record that failed validation."""
    if isinstance(record, dict):
        value = record.get(name)
    elif isinstance(record, (list, tuple)) and len(record) > position:
        value = record[position]
    else:
        value = None
    return value if isinstance(value, str) else None


def reconcile(
    old_catalog: Optional[Catalog],
    extraction: Iterable[Any],
    prune: bool = False,
    strict: bool = False,
    plural_rules: Optional[PluralRules] = None,
) -> MergeResult:
    """Merge extraction into old_catalog. See Reconciler."""
    return Reconciler(plural_rules=plural_rules, prune=prune, strict=strict).reconcile(old_catalog, extraction)
