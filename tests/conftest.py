"""
Shared fixtures: a small Brazilian Portuguese catalog and its TS rendering.
"""

import pytest

from tscat.catalog import Catalog, Location, Message, Status


SAMPLE_TS = '''<?xml version="1.0" ?><!DOCTYPE TS><TS language="pt_BR" sourcelanguage="en" version="2.1">
<context>
    <name>Account</name>
    <message>
        <location filename="../src/account.cpp" line="270"/>
        <source>Ready</source>
        <translation>Pronto</translation>
    </message>
    <message>
        <location filename="../src/account.cpp" line="+2"/>
        <source>Registered</source>
        <translation>Registrado</translation>
    </message>
    <message>
        <location line="+1"/>
        <source>Not Registered</source>
        <translation type="unfinished"></translation>
    </message>
</context>
<context>
    <name>Call</name>
    <message>
        <location filename="../src/call.cpp" line="42"/>
        <source>New</source>
        <translation>Novo</translation>
    </message>
    <message>
        <location filename="../src/call.cpp" line="43"/>
        <source>Busy</source>
        <translation type="obsolete">Ocupado</translation>
    </message>
    <message numerus="yes">
        <location filename="../src/call.cpp" line="80"/>
        <source>%n call(s)</source>
        <comment>history</comment>
        <translation>
            <numerusform>%n chamada</numerusform>
            <numerusform>%n chamadas</numerusform>
        </translation>
    </message>
</context>
</TS>
'''


@pytest.fixture
def sample_ts():
    return SAMPLE_TS


@pytest.fixture
def call_catalog():
    """Catalog with one context: two finished messages and a finished plural."""
    catalog = Catalog(language="pt_BR", source_language="en")
    catalog.upsert("Call", Message(
        source_text="New",
        translation="Novo",
        status=Status.FINISHED,
        locations=[Location("src/call.cpp", 10)],
    ))
    catalog.upsert("Call", Message(
        source_text="Busy",
        translation="Ocupado",
        status=Status.FINISHED,
        locations=[Location("src/call.cpp", 20)],
    ))
    catalog.upsert("Call", Message(
        source_text="%n call(s)",
        plural_forms=["%n chamada", "%n chamadas"],
        is_plural=True,
        status=Status.FINISHED,
        locations=[Location("src/call.cpp", 30)],
    ))
    return catalog
