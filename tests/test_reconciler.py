#!/usr/bin/env python3
"""
Tests for catalog reconciliation against fresh extraction lists.
"""

import pytest

from tscat.catalog import Catalog, Location, Message, Status
from tscat.errors import DuplicateExtraction, InvalidSource
from tscat.extraction import ExtractedMessage
from tscat.reconciler import Reconciler, reconcile


def ext(context, source, locations=(), disambiguation=None, is_plural=False):
    return [context, source, disambiguation, [list(loc) for loc in locations], is_plural]


def test_first_run_creates_unfinished_messages():
    """Test 1: An empty catalog gets one unfinished, untranslated message per record."""
    result = reconcile(Catalog(language="pt_BR"), [
        ext("Call", "New", [("src/call.cpp", 10)]),
        ext("Call", "%n call(s)", [("src/call.cpp", 30)], is_plural=True),
    ])

    messages = [m for _, m in result.catalog.messages()]
    assert [m.source_text for m in messages] == ["New", "%n call(s)"]
    assert all(m.status is Status.UNFINISHED for m in messages)
    assert all(not m.is_translated() for m in messages)
    assert messages[1].is_plural
    assert result.report.new == 2
    assert result.report.existing == 0
    assert result.catalog.language == "pt_BR"


def test_call_context_scenario(call_catalog):
    """Test 2: New keeps its translation, Busy goes obsolete, Hold (new) is added."""
    result = reconcile(call_catalog, [
        ext("Call", "New", [("src/call.cpp", 12)]),
        ext("Call", "%n call(s)", [("src/call.cpp", 31)], is_plural=True),
        ext("Call", "Hold (new)", [("src/call.cpp", 50)]),
    ])
    catalog = result.catalog

    new = catalog.find("Call", "New")
    assert new.translation == "Novo"
    assert new.status is Status.FINISHED
    assert new.locations == [Location("src/call.cpp", 12)]

    busy = catalog.find("Call", "Busy")
    assert busy.status is Status.OBSOLETE
    assert busy.translation == "Ocupado"
    assert busy.locations == [Location("src/call.cpp", 20)]

    hold = catalog.find("Call", "Hold (new)")
    assert hold.status is Status.UNFINISHED
    assert hold.translation == ""

    assert result.report.found == 3
    assert result.report.new == 1
    assert result.report.existing == 2
    assert result.report.obsoleted == 1


def test_old_catalog_is_not_modified(call_catalog):
    """Test 3: Reconciliation returns a new catalog and leaves the input alone."""
    before = call_catalog.copy()
    reconcile(call_catalog, [ext("Call", "Other")])
    assert call_catalog == before


def test_vanish_progression_and_prune(call_catalog):
    """Test 4: Missing once -> obsolete, twice -> vanished, then pruned only on request."""
    extraction = [ext("Call", "New"), ext("Call", "%n call(s)", is_plural=True)]

    first = reconcile(call_catalog, extraction).catalog
    assert first.find("Call", "Busy").status is Status.OBSOLETE

    second = reconcile(first, extraction).catalog
    assert second.find("Call", "Busy").status is Status.VANISHED
    assert second.find("Call", "Busy").translation == "Ocupado"

    third = reconcile(second, extraction).catalog
    assert third.find("Call", "Busy").status is Status.VANISHED

    pruned = reconcile(third, extraction, prune=True)
    assert pruned.catalog.find("Call", "Busy") is None
    assert pruned.report.pruned == 1


def test_reappearing_message_is_reactivated_as_unfinished(call_catalog):
    """Test 5: A retired message found again keeps its text but needs review."""
    retired = reconcile(call_catalog, [ext("Call", "New")]).catalog
    retired = reconcile(retired, [ext("Call", "New")]).catalog
    assert retired.find("Call", "Busy").status is Status.VANISHED

    result = reconcile(retired, [ext("Call", "New"), ext("Call", "Busy", [("src/call.cpp", 25)])])
    busy = result.catalog.find("Call", "Busy")

    assert busy.status is Status.UNFINISHED
    assert busy.translation == "Ocupado"
    assert busy.locations == [Location("src/call.cpp", 25)]
    assert result.report.reactivated == 1


def test_idempotent_on_its_own_output(call_catalog):
    """Test 6: Running the same extraction twice changes nothing for extracted messages."""
    extraction = [
        ext("Call", "New", [("src/call.cpp", 12)]),
        ext("Call", "%n call(s)", [("src/call.cpp", 31)], is_plural=True),
        ext("Call", "Hold (new)", [("src/call.cpp", 50)]),
    ]
    once = reconcile(call_catalog, extraction).catalog
    twice = reconcile(once, extraction).catalog

    for context, source, _, _, _ in extraction:
        a = once.find(context, source)
        b = twice.find(context, source)
        assert (a.status, a.locations, a.translation, a.plural_forms) == \
               (b.status, b.locations, b.translation, b.plural_forms)


def test_finished_is_never_granted():
    """Test 7: An unfinished message with text stays unfinished after a merge."""
    old = Catalog(language="pt_BR")
    old.upsert("Call", Message("New", translation="Novo", status=Status.UNFINISHED))

    merged = reconcile(old, [ext("Call", "New")]).catalog
    assert merged.find("Call", "New").status is Status.UNFINISHED
    assert merged.find("Call", "New").translation == "Novo"


def test_ordering_of_new_messages_and_contexts(call_catalog):
    """Test 8: Old order is kept, new messages are appended, new contexts follow."""
    result = reconcile(call_catalog, [
        ext("Account", "Ready"),
        ext("Call", "Hold (new)"),
        ext("Call", "New"),
        ext("Account", "Error"),
        ext("Video", "Mute"),
    ])
    catalog = result.catalog

    assert [ctx.name for ctx in catalog.contexts()] == ["Call", "Account", "Video"]
    assert [m.source_text for m in catalog.context("Call")] == ["New", "Busy", "%n call(s)", "Hold (new)"]
    assert [m.source_text for m in catalog.context("Account")] == ["Ready", "Error"]


def test_duplicate_records_merge_locations():
    """Test 9: A repeated key is merged once, its locations joined, and reported."""
    result = reconcile(Catalog(), [
        ext("Call", "New", [("src/a.cpp", 1)]),
        ext("Call", "New", [("src/b.cpp", 2), ("src/a.cpp", 1)]),
    ])

    new = result.catalog.find("Call", "New")
    assert new.locations == [Location("src/a.cpp", 1), Location("src/b.cpp", 2)]
    assert result.report.found == 1
    assert [issue.error_type for issue in result.report.issues] == ["DuplicateExtraction"]
    assert result.report.issues[0].index == 1


def test_invalid_records_are_skipped():
    """Test 10: Bad records are reported and the rest of the batch still merges."""
    result = reconcile(Catalog(), [
        ext("Call", ""),
        ext("Call", "New", [("src/call.cpp", 0)]),
        {"context": "Call", "source_text": "Busy"},
        ["Call", "Busy", None, [], "no"],
        ext("Call", "Hold"),
    ])

    assert [m.source_text for _, m in result.catalog.messages()] == ["Hold"]
    assert [issue.index for issue in result.report.issues] == [0, 1, 2, 3]
    assert {issue.error_type for issue in result.report.issues} == {"InvalidSource"}
    assert result.report.issues[1].source_text == "New"


def test_strict_mode_raises():
    """Test 11: strict=True turns the first recorded issue into an exception."""
    with pytest.raises(InvalidSource):
        reconcile(Catalog(), [ext("Call", "")], strict=True)
    with pytest.raises(DuplicateExtraction):
        reconcile(Catalog(), [ext("Call", "New"), ext("Call", "New")], strict=True)


def test_plural_slots_incomplete_for_language():
    """Test 12: A finished plural short of the language's plural count is downgraded."""
    old = Catalog(language="ru")
    old.upsert("Call", Message(
        "%n call(s)",
        is_plural=True,
        plural_forms=["%n звонок", "%n звонка"],
        status=Status.FINISHED,
    ))

    merged = reconcile(old, [ext("Call", "%n call(s)", is_plural=True)]).catalog
    assert merged.find("Call", "%n call(s)").status is Status.UNFINISHED
    assert merged.find("Call", "%n call(s)").plural_forms == ["%n звонок", "%n звонка"]


def test_plurality_change_converts_and_downgrades(call_catalog):
    """Test 13: A message that became plural keeps its text as the first form."""
    merged = reconcile(call_catalog, [ext("Call", "New", is_plural=True)]).catalog
    new = merged.find("Call", "New")

    assert new.is_plural
    assert new.plural_forms == ["Novo"]
    assert new.translation == ""
    assert new.status is Status.UNFINISHED


def test_comments_are_carried_over():
    """Test 14: Developer and translator notes survive a merge."""
    old = Catalog()
    old.upsert("Call", Message("New", extra_comment="button label", translator_comment="checked"))

    merged = reconcile(old, [ExtractedMessage("Call", "New", None, (), False)]).catalog
    assert merged.find("Call", "New").extra_comment == "button label"
    assert merged.find("Call", "New").translator_comment == "checked"


def test_report_summary(call_catalog):
    """Test 15: The summary reads like lupdate's."""
    result = Reconciler().reconcile(call_catalog, [ext("Call", "New"), ext("Call", "Hold")])
    summary = result.report.summary()

    assert summary.startswith("Found 2 source text(s) (1 new and 1 already existing)")
    assert "2 became obsolete" in summary
    assert result.report.to_dict()["obsoleted"] == 2


def test_contexts_left_empty_are_dropped():
    """Test 16: A context whose last message is pruned disappears from the output."""
    old = Catalog()
    old.upsert("Video", Message("Mute", status=Status.VANISHED))
    old.ensure_context("Empty")
    old.upsert("Call", Message("New"))

    merged = reconcile(old, [ext("Call", "New")], prune=True).catalog
    assert [ctx.name for ctx in merged.contexts()] == ["Call"]


def test_unreadable_records_become_issues():
    """Test 17: Records that cannot be read are reported per index, the rest still merge."""
    class Exploding(list):
        def __iter__(self):
            raise RuntimeError("stream closed")

    result = reconcile(Catalog(), [
        {1: "x", "context": "C"},
        ext("C", "ok"),
        Exploding(["C", "broken", None, [], False]),
    ])

    assert [m.source_text for _, m in result.catalog.messages()] == ["ok"]
    assert [issue.index for issue in result.report.issues] == [0, 2]
    assert all(issue.error_type == "InvalidSource" for issue in result.report.issues)
    assert result.report.issues[0].context == "C"
    assert "RuntimeError" in result.report.issues[1].message


def test_unreadable_record_raises_invalid_source_when_strict():
    """Test 18: In strict mode an unreadable record raises InvalidSource."""
    with pytest.raises(InvalidSource):
        reconcile(Catalog(), [{1: "x", "context": "C"}], strict=True)
