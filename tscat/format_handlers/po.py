#!/usr/bin/env python3
"""
GNU gettext PO format handler.

Reads and writes catalogs as .po files, the interchange format most
translation platforms accept. Contexts and disambiguations share msgctxt as
"Context|disambiguation", the convention lconvert uses.
"""

import logging
import re
from typing import Optional

from ..catalog import Catalog, Location, Message, Status
from ..errors import DuplicateKey, ParseError
from ..plurals import PluralRules, default_rules
from .base import FormatHandler

logger = logging.getLogger(__name__)

_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', '"': '"', '\\': '\\', 'a': '\a', 'b': '\b', 'f': '\f', 'v': '\v'}
_UNESCAPE_PATTERN = re.compile(r'\\(.)')
_KEYWORD_PATTERN = re.compile(r'^(msgctxt|msgid_plural|msgid|msgstr(?:\[(\d+)\])?)\s+(.*)$')
# gettext >= 0.22 wraps file names containing whitespace in FSI ... PDI
_FSI, _PDI = '\u2068', '\u2069'
_REFERENCE_PATTERN = re.compile(f'{_FSI}([^{_PDI}]*){_PDI}(?::(\\d+))?|(\\S+)')


def _comment_text(text: str) -> str:
    """Comment body with the single separator space after the marker removed."""
    return text[1:] if text.startswith(' ') else text


def _reference(loc: Location) -> str:
    filename = f'{_FSI}{loc.filename}{_PDI}' if any(c.isspace() for c in loc.filename) else loc.filename
    return f'{filename}:{loc.line}'


class PoHandler(FormatHandler):
    """
    Handler for GNU gettext PO files.

    PO format structure:
    ```
    # Translator comment
    #. Extracted comment
    #: src/call.cpp:42
    #, fuzzy
    msgctxt "Call|disambiguation"
    msgid "Source text"
    msgstr "Translated text"

    # Plural form
    msgctxt "Call"
    msgid "%n call(s)"
    msgid_plural "%n call(s)"
    msgstr[0] "%n chamada"
    msgstr[1] "%n chamadas"

    # Obsolete
    #~ msgctxt "Call"
    #~ msgid "Busy"
    #~ msgstr "Ocupado"
    ```

    Unfinished messages with text carry the fuzzy flag; vanished messages
    are obsolete entries with a "vanished" flag.
    """

    def __init__(self, plural_rules: Optional[PluralRules] = None):
        self._plural_rules = plural_rules

    @property
    def name(self) -> str:
        return "po"

    @property
    def file_extensions(self) -> list[str]:
        return ["po", "pot"]

    @property
    def description(self) -> str:
        return "GNU gettext portable object (.po/.pot)"

    @property
    def plural_rules(self) -> PluralRules:
        if self._plural_rules is None:
            self._plural_rules = default_rules()
        return self._plural_rules

    def decode(self, content: str) -> Catalog:
        """
        Parse PO content into a catalog.

        Args:
            content: Raw PO file content

        Returns:
            Decoded Catalog

        Raises:
            ParseError: On malformed lines or duplicate messages
        """
        catalog = Catalog()
        current = self._new_entry_dict()
        last_field: Optional[tuple] = None

        lines = content.split('\n')
        for line_num, raw in enumerate(lines, 1):
            line = raw.rstrip('\r')

            # Blank line ends an entry
            if not line.strip():
                self._finish_entry(catalog, current)
                current = self._new_entry_dict()
                last_field = None
                continue

            obsolete = False
            if line.startswith('#~'):
                if line.startswith('#~|'):
                    continue
                obsolete = True
                line = line[2:].lstrip()
                if not line.strip():
                    continue

            if line.startswith('#'):
                # A comment after a complete entry starts a new one
                if current['msgid'] is not None and current['msgstr'] is not None:
                    self._finish_entry(catalog, current)
                    current = self._new_entry_dict()
                self._read_comment(line, line_num, current)
                last_field = None
                continue

            if line.startswith('"'):
                if last_field is None:
                    raise ParseError("Continuation line without a preceding keyword", line=line_num)
                self._append_field(current, last_field, self._extract_quoted(line, line_num))
                continue

            match = _KEYWORD_PATTERN.match(line)
            if not match:
                raise ParseError(f"Unexpected line: '{line[:60]}'", line=line_num)

            keyword, index, rest = match.groups()
            value = self._extract_quoted(rest, line_num)

            # A new msgctxt/msgid after msgstr starts the next entry
            if keyword in ('msgctxt', 'msgid') and current['msgstr'] is not None:
                self._finish_entry(catalog, current)
                current = self._new_entry_dict()

            if obsolete:
                current['obsolete'] = True
            current['line'] = current['line'] or line_num

            if index is not None:
                last_field = ('msgstr_plural', int(index))
                current['msgstr_plural'][int(index)] = value
                current['msgstr'] = current['msgstr'] or ''
            else:
                last_field = (keyword,)
                if current[keyword] is not None:
                    raise ParseError(f"Duplicate {keyword}", line=line_num)
                current[keyword] = value

        self._finish_entry(catalog, current)
        return catalog

    def _new_entry_dict(self) -> dict:
        """Create empty entry dictionary."""
        return {
            'translator_comment': [],
            'extracted_comment': [],
            'reference': [],
            'flags': [],
            'msgctxt': None,
            'msgid': None,
            'msgid_plural': None,
            'msgstr': None,
            'msgstr_plural': {},
            'obsolete': False,
            'line': None,
        }

    def _read_comment(self, line: str, line_num: int, entry: dict) -> None:
        if line.startswith('#.'):
            entry['extracted_comment'].append(_comment_text(line[2:]))
        elif line.startswith('#:'):
            entry['reference'].extend(self._parse_references(line[2:], line_num))
        elif line.startswith('#,'):
            entry['flags'].extend(f.strip() for f in line[2:].split(',') if f.strip())
        elif line.startswith('#|'):
            pass  # previous msgid; no fuzzy matching
        else:
            entry['translator_comment'].append(_comment_text(line[1:]))

    def _parse_references(self, text: str, line_num: int) -> list[Location]:
        refs = []
        for match in _REFERENCE_PATTERN.finditer(text):
            isolated, isolated_number, token = match.groups()
            if token is None:
                if isolated_number is None:
                    logger.warning("Line %d: skipping reference without line number: %s", line_num, isolated)
                    continue
                refs.append(Location(isolated, int(isolated_number)))
                continue
            filename, sep, number = token.rpartition(':')
            if not sep or not filename or not number.isdigit() or int(number) < 1:
                logger.warning("Line %d: skipping reference without line number: %s", line_num, token)
                continue
            refs.append(Location(filename, int(number)))
        return refs

    def _extract_quoted(self, text: str, line_num: int) -> str:
        """Extract and unescape a quoted PO string."""
        text = text.strip()
        if len(text) < 2 or not text.startswith('"') or not text.endswith('"'):
            raise ParseError(f"Expected quoted string, got '{text[:40]}'", line=line_num)
        return self._unescape_po_string(text[1:-1])

    def _append_field(self, entry: dict, field_ref: tuple, value: str) -> None:
        if field_ref[0] == 'msgstr_plural':
            entry['msgstr_plural'][field_ref[1]] += value
        else:
            entry[field_ref[0]] += value

    def _unescape_po_string(self, s: str) -> str:
        """Unescape PO string escapes."""
        return _UNESCAPE_PATTERN.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), s)

    def _escape_po_string(self, s: str) -> str:
        """Escape string for PO format."""
        return (
            s.replace('\\', '\\\\')
            .replace('"', '\\"')
            .replace('\n', '\\n')
            .replace('\t', '\\t')
            .replace('\r', '\\r')
        )

    def _finish_entry(self, catalog: Catalog, entry: dict) -> None:
        """Turn a parsed entry dictionary into a catalog message (or header)."""
        if entry['msgid'] is None:
            if entry['msgctxt'] is not None or entry['msgstr'] is not None:
                raise ParseError("Entry without msgid", line=entry['line'])
            return
        if entry['msgstr'] is None:
            raise ParseError(f"msgid '{entry['msgid'][:40]}' has no msgstr", line=entry['line'])

        # Header entry
        if not entry['msgid'] and entry['msgctxt'] is None:
            self._read_header(catalog, entry['msgstr'])
            return
        if not entry['msgid']:
            raise ParseError("Empty msgid", line=entry['line'])

        context, disambiguation = self._split_msgctxt(entry['msgctxt'])
        is_plural = entry['msgid_plural'] is not None

        plural_forms: list[str] = []
        if is_plural:
            slots = entry['msgstr_plural']
            plural_forms = [slots.get(i, '') for i in range(max(slots) + 1)] if slots else []
            if not any(plural_forms):
                plural_forms = []

        flags = entry['flags']
        message = Message(
            source_text=entry['msgid'],
            disambiguation=disambiguation,
            translation='' if is_plural else entry['msgstr'],
            locations=entry['reference'],
            plural_forms=plural_forms,
            is_plural=is_plural,
            extra_comment='\n'.join(entry['extracted_comment']) or None,
            translator_comment='\n'.join(entry['translator_comment']) or None,
        )

        if entry['obsolete']:
            message.status = Status.VANISHED if 'vanished' in flags else Status.OBSOLETE
        elif 'fuzzy' in flags or not message.is_complete():
            message.status = Status.UNFINISHED
        else:
            message.status = Status.FINISHED

        try:
            catalog.upsert(context, message)
        except DuplicateKey as e:
            raise ParseError(str(e), line=entry['line'])

    def _read_header(self, catalog: Catalog, header: str) -> None:
        for header_line in header.split('\n'):
            key, sep, value = header_line.partition(':')
            if not sep:
                continue
            key = key.strip().lower()
            if key == 'language':
                catalog.language = value.strip()
            elif key == 'x-source-language':
                catalog.source_language = value.strip()

    def _split_msgctxt(self, msgctxt: Optional[str]) -> tuple[str, Optional[str]]:
        if msgctxt is None:
            return '', None
        context, sep, disambiguation = msgctxt.partition('|')
        return context, (disambiguation or None) if sep else None

    def _format_po_string(self, prefix: str, s: str, wrap_width: int = 76) -> list[str]:
        """
        Format a string for PO output, wrapping long strings at ~76 characters.

        Args:
            prefix: The PO prefix (e.g., 'msgid', 'msgstr', 'msgstr[0]')
            s: The string to format
            wrap_width: Maximum line width for wrapping (default: 76)

        Returns:
            List of formatted lines
        """
        if s is None:
            s = ""
        escaped = self._escape_po_string(s)

        # Account for prefix + space + two quotes
        single_line = f'{prefix} "{escaped}"'
        if len(single_line) <= wrap_width and '\\n' not in escaped[:-2]:
            return [single_line]

        # For longer strings, use continuation format:
        # msgid ""
        # "first part "
        # "second part"
        lines = [f'{prefix} ""']

        # Split by escaped newlines first to preserve line breaks
        segments = escaped.split('\\n')

        for i, segment in enumerate(segments):
            if i < len(segments) - 1:
                segment += '\\n'

            while segment:
                max_chunk = wrap_width - 2
                if len(segment) <= max_chunk:
                    lines.append(f'"{segment}"')
                    break

                # Find a good break point (prefer space), never inside an escape
                break_at = max_chunk
                space_pos = segment.rfind(' ', max_chunk - 20, max_chunk)
                if space_pos > 0:
                    break_at = space_pos + 1
                while break_at > 1 and self._splits_escape(segment, break_at):
                    break_at -= 1

                lines.append(f'"{segment[:break_at]}"')
                segment = segment[break_at:]

        return lines

    def _splits_escape(self, segment: str, pos: int) -> bool:
        """True if cutting at pos leaves a dangling backslash."""
        backslashes = len(segment[:pos]) - len(segment[:pos].rstrip('\\'))
        return backslashes % 2 == 1

    def encode(self, catalog: Catalog) -> str:
        """
        Write a catalog as a PO file.

        Args:
            catalog: Catalog to write

        Returns:
            Complete PO file content
        """
        rule = self.plural_rules.rule_for(catalog.language)
        header_fields = [
            "MIME-Version: 1.0",
            "Content-Type: text/plain; charset=UTF-8",
            "Content-Transfer-Encoding: 8bit",
            "X-Qt-Contexts: true",
            f"Language: {catalog.language}",
            f"X-Source-Language: {catalog.source_language}",
            f"Plural-Forms: {rule.header()}",
        ]

        lines = ['msgid ""', 'msgstr ""']
        for header_line in header_fields:
            lines.append(f'"{self._escape_po_string(header_line)}\\n"')
        lines.append('')

        for ctx in catalog.contexts():
            for message in ctx:
                lines.extend(self._encode_message(ctx.name, message))
                lines.append('')

        return '\n'.join(lines)

    def _encode_message(self, context: str, message: Message) -> list[str]:
        lines = []

        if message.translator_comment:
            for comment in message.translator_comment.split('\n'):
                lines.append(f'# {comment}' if comment else '#')
        if message.extra_comment:
            for comment in message.extra_comment.split('\n'):
                lines.append(f'#. {comment}' if comment else '#.')
        for loc in message.locations:
            lines.append(f'#: {_reference(loc)}')

        if message.status is Status.VANISHED:
            lines.append('#, vanished')
        elif message.status is Status.UNFINISHED and message.is_translated():
            lines.append('#, fuzzy')

        body = []
        if context or message.disambiguation:
            msgctxt = context if not message.disambiguation else f"{context}|{message.disambiguation}"
            body.extend(self._format_po_string('msgctxt', msgctxt))
        body.extend(self._format_po_string('msgid', message.source_text))

        if message.is_plural:
            body.extend(self._format_po_string('msgid_plural', message.source_text))
            forms = message.plural_forms or ['']
            for idx, form in enumerate(forms):
                body.extend(self._format_po_string(f'msgstr[{idx}]', form))
        else:
            body.extend(self._format_po_string('msgstr', message.translation))

        if not message.status.is_active:
            body = [f'#~ {line}' for line in body]

        return lines + body
