#!/usr/bin/env python3
"""
Qt Linguist TS format handler.

Handles reading and writing of .ts translation catalogs, the XML format
produced by lupdate and edited in Linguist.
"""

import logging
import re
from typing import Optional
from xml.etree import ElementTree as ET
from xml.parsers import expat

from ..catalog import Catalog, Location, Message, Status
from ..errors import DuplicateKey, ParseError
from .base import FormatHandler

logger = logging.getLogger(__name__)

# Characters XML 1.0 cannot carry as text; written as <byte value="xNN"/>
_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b-\x1f]')

_TYPE_TO_STATUS = {
    'unfinished': Status.UNFINISHED,
    'obsolete': Status.OBSOLETE,
    'vanished': Status.VANISHED,
}


class TsHandler(FormatHandler):
    """
    Handler for Qt Linguist .ts files.

    TS structure:
    ```xml
    <?xml version="1.0" encoding="utf-8"?>
    <!DOCTYPE TS>
    <TS version="2.1" language="pt_BR" sourcelanguage="en">
    <context>
        <name>Call</name>
        <message>
            <location filename="../src/call.cpp" line="42"/>
            <source>New</source>
            <comment>disambiguation</comment>
            <translation>Novo</translation>
        </message>
        <message numerus="yes">
            <source>%n call(s)</source>
            <translation type="unfinished">
                <numerusform>%n chamada</numerusform>
                <numerusform>%n chamadas</numerusform>
            </translation>
        </message>
    </context>
    </TS>
    ```

    A missing type means finished; otherwise type is unfinished, obsolete
    or vanished. Relative locations (line="+3") are resolved on read.
    """

    VERSION = "2.1"

    @property
    def name(self) -> str:
        return "ts"

    @property
    def file_extensions(self) -> list[str]:
        return ["ts"]

    @property
    def description(self) -> str:
        return "Qt Linguist translation source (.ts)"

    def decode(self, content: str) -> Catalog:
        """
        Parse TS content into a catalog.

        Args:
            content: Raw XML file content

        Returns:
            Decoded Catalog

        Raises:
            ParseError: On malformed XML or TS structure
        """
        root, lines = self._parse_xml(content)

        if root.tag != 'TS':
            raise ParseError(f"Root element must be 'TS', found '{root.tag}'", line=lines.get(root))

        catalog = Catalog(
            language=root.get('language', ''),
            source_language=root.get('sourcelanguage', 'en'),
        )

        # last line seen per file, for relative locations
        last_lines: dict[str, int] = {}
        last_filename: Optional[str] = None

        for ctx_elem in root.findall('context'):
            name_elem = ctx_elem.find('name')
            if name_elem is None:
                raise ParseError("Context without <name>", line=lines.get(ctx_elem))
            context_name = self._get_element_text(name_elem)
            catalog.ensure_context(context_name)

            for msg_elem in ctx_elem.findall('message'):
                message, last_filename = self._parse_message(msg_elem, lines, last_lines, last_filename)
                try:
                    catalog.upsert(context_name, message)
                except DuplicateKey as e:
                    raise ParseError(str(e), line=lines.get(msg_elem))

        return catalog

    def _parse_xml(self, content: str) -> tuple[ET.Element, dict[ET.Element, int]]:
        """Build an ElementTree, remembering the line each element starts on."""
        builder = ET.TreeBuilder()
        lines: dict[ET.Element, int] = {}
        parser = expat.ParserCreate()
        parser.buffer_text = True

        def start(tag, attrs):
            lines[builder.start(tag, attrs)] = parser.CurrentLineNumber

        parser.StartElementHandler = start
        parser.EndElementHandler = builder.end
        parser.CharacterDataHandler = builder.data

        try:
            parser.Parse(content, True)
        except expat.ExpatError as e:
            message = expat.errors.messages.get(e.code, str(e))
            raise ParseError(f"Invalid XML: {message}", line=e.lineno, offset=e.offset + 1)
        return builder.close(), lines

    def _parse_message(
        self,
        msg_elem: ET.Element,
        lines: dict[ET.Element, int],
        last_lines: dict[str, int],
        last_filename: Optional[str],
    ) -> tuple[Message, Optional[str]]:
        line = lines.get(msg_elem)

        source_elem = msg_elem.find('source')
        if source_elem is None:
            raise ParseError("Message without <source>", line=line)
        source_text = self._get_element_text(source_elem)
        if not source_text:
            raise ParseError("Message with empty <source>", line=lines.get(source_elem))

        locations = []
        for loc_elem in msg_elem.findall('location'):
            filename = loc_elem.get('filename', last_filename)
            if not filename:
                raise ParseError("Location without filename", line=lines.get(loc_elem))
            loc_line = self._parse_line(loc_elem.get('line'), last_lines.get(filename, 0), lines.get(loc_elem))
            last_lines[filename] = loc_line
            last_filename = filename
            locations.append(Location(filename, loc_line))

        is_plural = msg_elem.get('numerus') == 'yes'
        translation = ''
        plural_forms: list[str] = []
        status = Status.UNFINISHED

        trans_elem = msg_elem.find('translation')
        if trans_elem is not None:
            trans_type = trans_elem.get('type')
            if trans_type is not None and trans_type not in _TYPE_TO_STATUS:
                raise ParseError(f"Unknown translation type '{trans_type}'", line=lines.get(trans_elem))
            if is_plural:
                plural_forms = [self._get_element_text(f) for f in trans_elem.findall('numerusform')]
            else:
                translation = self._get_element_text(trans_elem)
            status = _TYPE_TO_STATUS.get(trans_type, Status.FINISHED)

        message = Message(
            source_text=source_text,
            disambiguation=self._optional_text(msg_elem, 'comment'),
            translation=translation,
            status=status,
            locations=locations,
            plural_forms=plural_forms,
            is_plural=is_plural,
            extra_comment=self._optional_text(msg_elem, 'extracomment'),
            translator_comment=self._optional_text(msg_elem, 'translatorcomment'),
        )

        if message.status is Status.FINISHED and not message.is_complete():
            logger.warning("Line %s: finished message '%s' has no translation, reading as unfinished", line, source_text)
            message.status = Status.UNFINISHED

        return message, last_filename

    def _parse_line(self, value: Optional[str], previous: int, elem_line: Optional[int]) -> int:
        """Absolute or relative (+N/-N) line number."""
        if value is None:
            raise ParseError("Location without line number", line=elem_line)
        try:
            if value[:1] in ('+', '-'):
                number = previous + int(value)
            else:
                number = int(value)
        except ValueError:
            raise ParseError(f"Invalid line number '{value}'", line=elem_line)
        if number < 1:
            raise ParseError(f"Line number must be positive, got {number}", line=elem_line)
        return number

    def _optional_text(self, parent: ET.Element, tag: str) -> Optional[str]:
        elem = parent.find(tag)
        if elem is None:
            return None
        return self._get_element_text(elem) or None

    def _get_element_text(self, elem: ET.Element) -> str:
        """
        Extract text content, turning <byte value="xNN"/> back into characters.

        Elements split into <lengthvariant> children read as their first
        (longest) variant.
        """
        variants = elem.findall('lengthvariant')
        if variants:
            if len(variants) > 1:
                logger.debug("Keeping the first of %d length variants", len(variants))
            return self._get_element_text(variants[0])
        text = elem.text or ''
        for child in elem:
            if child.tag == 'byte':
                text += self._byte_char(child.get('value', ''))
            if child.tail:
                text += child.tail
        return text

    def _byte_char(self, value: str) -> str:
        try:
            if value[:1] in ('x', 'X'):
                return chr(int(value[1:], 16))
            return chr(int(value))
        except ValueError:
            raise ParseError(f"Invalid byte value '{value}'")

    def _escape(self, text: str) -> str:
        """Escape text content for TS XML."""
        text = (
            text.replace('&', '&amp;')
            .replace('<', '&lt;')
            .replace('>', '&gt;')
            .replace('"', '&quot;')
            .replace("'", '&apos;')
        )
        return _CONTROL_CHARS.sub(lambda m: f'<byte value="x{ord(m.group(0)):x}"/>', text)

    def _escape_attr(self, text: str) -> str:
        return (
            text.replace('&', '&amp;')
            .replace('<', '&lt;')
            .replace('>', '&gt;')
            .replace('"', '&quot;')
            .replace('\n', '&#10;')
            .replace('\t', '&#9;')
        )

    def encode(self, catalog: Catalog) -> str:
        """
        Write a catalog as TS XML.

        Args:
            catalog: Catalog to write

        Returns:
            Complete TS file content
        """
        lines = [
            '<?xml version="1.0" encoding="utf-8"?>',
            '<!DOCTYPE TS>',
            f'<TS version="{self.VERSION}" language="{self._escape_attr(catalog.language)}" '
            f'sourcelanguage="{self._escape_attr(catalog.source_language)}">',
        ]

        for ctx in catalog.contexts():
            lines.append('<context>')
            lines.append(f'    <name>{self._escape(ctx.name)}</name>')
            for message in ctx:
                lines.extend(self._encode_message(message))
            lines.append('</context>')

        lines.append('</TS>')
        return '\n'.join(lines) + '\n'

    def _encode_message(self, message: Message) -> list[str]:
        lines = ['    <message numerus="yes">' if message.is_plural else '    <message>']

        for loc in message.locations:
            lines.append(f'        <location filename="{self._escape_attr(loc.filename)}" line="{loc.line}"/>')

        lines.append(f'        <source>{self._escape(message.source_text)}</source>')
        if message.disambiguation:
            lines.append(f'        <comment>{self._escape(message.disambiguation)}</comment>')
        if message.extra_comment:
            lines.append(f'        <extracomment>{self._escape(message.extra_comment)}</extracomment>')
        if message.translator_comment:
            lines.append(f'        <translatorcomment>{self._escape(message.translator_comment)}</translatorcomment>')

        type_attr = '' if message.status is Status.FINISHED else f' type="{message.status.value}"'

        if message.is_plural:
            if message.plural_forms:
                lines.append(f'        <translation{type_attr}>')
                for form in message.plural_forms:
                    lines.append(f'            <numerusform>{self._escape(form)}</numerusform>')
                lines.append('        </translation>')
            else:
                lines.append(f'        <translation{type_attr}/>')
        elif message.translation or not type_attr:
            lines.append(f'        <translation{type_attr}>{self._escape(message.translation)}</translation>')
        else:
            lines.append(f'        <translation{type_attr}/>')

        lines.append('    </message>')
        return lines
